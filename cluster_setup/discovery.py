"""Node discovery feed backed by the Tailscale network status."""

import json
import subprocess

from cluster_setup.exceptions import DiscoveryError
from cluster_setup.logging_config import get_logger
from cluster_setup.models.minion import Minion

logger = get_logger(__name__)


def _fqdn(info: dict) -> str:
    dns_name = info.get("DNSName", "")
    return dns_name.rstrip(".") if dns_name else info.get("HostName", "")


def parse_status(status_data: dict, online_only: bool = True) -> list[Minion]:
    """Turn `tailscale status --json` output into unassigned minions.

    Peers without an ID or a usable name are skipped.
    """
    minions = []
    peers = list((status_data.get("Peer") or {}).values())
    if "Self" in status_data:
        peers.append({**status_data["Self"], "Online": True})

    for info in peers:
        minion_id = info.get("ID")
        fqdn = _fqdn(info)
        if not minion_id or not fqdn:
            logger.warning(f"Skipping peer without ID or name: {info.get('HostName')}")
            continue
        if online_only and not info.get("Online", False):
            logger.debug(f"Skipping offline peer {fqdn}")
            continue

        try:
            minions.append(Minion(minion_id=str(minion_id), fqdn=fqdn))
        except ValueError as e:
            logger.warning(f"Failed to parse peer {minion_id}: {e}")

    return minions


class TailscaleFeed:
    """Supplies discovered minions from the local Tailscale daemon."""

    def __init__(self, timeout: int = 10, online_only: bool = True):
        self.timeout = timeout
        self.online_only = online_only

    def discover(self) -> list[Minion]:
        """Query the Tailscale network for nodes.

        Raises:
            DiscoveryError: If Tailscale is not running or the command fails
        """
        logger.debug("Starting node discovery")

        try:
            result = subprocess.run(
                ["tailscale", "status", "--json"],
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"Tailscale command timed out after {self.timeout} seconds")
            raise DiscoveryError(
                "Tailscale command timed out",
                f"The 'tailscale status' command did not respond within {self.timeout} seconds. "
                "Check if Tailscale is running: sudo systemctl status tailscaled",
            )
        except subprocess.CalledProcessError as e:
            logger.error(f"Tailscale command failed with return code {e.returncode}: {e.stderr}")
            raise DiscoveryError(
                "Tailscale command failed",
                f"Command output: {e.stderr}\n\n"
                "Possible causes:\n"
                "1. Tailscale is not authenticated (run: tailscale up)\n"
                "2. Tailscale daemon is not running (run: sudo systemctl start tailscaled)",
            )
        except FileNotFoundError:
            logger.error("Tailscale binary not found in PATH")
            raise DiscoveryError(
                "Tailscale is not installed or not in PATH",
                "Install Tailscale from https://tailscale.com/download",
            )

        try:
            status_data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse Tailscale JSON output: {e}")
            raise DiscoveryError(
                "Failed to parse Tailscale status output",
                "The Tailscale command returned invalid JSON.",
            )

        minions = parse_status(status_data, online_only=self.online_only)
        logger.info(f"Discovered {len(minions)} node(s)")
        return minions
