"""Short link creation and lookup.

This module handles the core logic for creating and resolving short links,
including URL cleaning, ID allocation, record construction, and short URL
generation.
"""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlsplit

from src.config import Config
from src.id_generator import IDGenerator
from src.storage import REPORT_REASONS, ReportedLink, ShortLink, Storage

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_DOMAIN = "lytn.it"

_HOSTNAME_RE = re.compile(r"[A-Za-z0-9.-]+")
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


class LinkHandlerError(Exception):
    """Raised when link operations fail."""

    pass


def meets_url_requirements(url: str) -> bool:
    """Check that a URL has a scheme, a valid port and a dotted hostname.

    Unicode hostnames are checked in their IDNA (punycode) form.
    """
    try:
        parsed = urlsplit(url)
        hostname = parsed.hostname
        # Raises ValueError for non-numeric or out of range ports
        parsed.port
    except ValueError:
        return False
    if not (parsed.scheme and hostname and "." in hostname):
        return False

    try:
        ascii_hostname = hostname.encode("idna").decode("ascii")
    except UnicodeError:
        return False
    return _HOSTNAME_RE.fullmatch(ascii_hostname) is not None


def clean_url(url: str) -> str:
    """Add an http:// scheme to bare host URLs such as "example.com/page".

    URLs that already meet requirements, or that would not meet them even
    with a scheme, are returned unchanged.
    """
    if not meets_url_requirements(url):
        with_scheme = f"http://{url}"
        if meets_url_requirements(with_scheme):
            return with_scheme
    return url


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Return the trimmed email if it looks valid, otherwise None."""
    if not isinstance(email, str) or not email.strip():
        return None
    email = email.strip()
    return email if _EMAIL_RE.fullmatch(email) else None


class LinkHandler:
    """Handles short link creation and resolution.

    Coordinates ID allocation, storage, and URL construction.
    """

    def __init__(self, storage: Storage, id_generator: IDGenerator, config: Config):
        """Initialize link handler with dependencies.

        Args:
            storage: Storage instance for persisting links
            id_generator: Allocator for unique link IDs
            config: Configuration containing custom domain settings
        """
        self.storage = storage
        self.id_generator = id_generator
        self.config = config

    def create_link(
        self, url: str, client_ip: Optional[str] = None
    ) -> tuple[str, str]:
        """Create a short link for a URL.

        Args:
            url: Destination URL as submitted
            client_ip: Address of the requesting client

        Returns:
            Tuple of (link_id, short_url)

        Raises:
            LinkHandlerError: If the URL is invalid or the link cannot be saved
            ExhaustedAttempts: If no unused ID could be allocated
        """
        if not url or not url.strip():
            logger.warning("Attempted to create link with empty URL")
            raise LinkHandlerError("URL parameter is required")

        cleaned = clean_url(url.strip())
        if not meets_url_requirements(cleaned):
            logger.warning(f"URL does not meet requirements: {cleaned}")
            raise LinkHandlerError("URL does not meet requirements")

        allocation = self.id_generator.generate(self.storage.exists)
        if allocation.degraded:
            logger.warning(
                f"Link ID {allocation.identifier} allocated with a fallback "
                f"iteration ({allocation.iteration})"
            )

        link = ShortLink(
            id=allocation.identifier,
            url=cleaned,
            destination=cleaned,
            created_at=datetime.now(timezone.utc).isoformat(),
            ip=client_ip,
        )

        try:
            self.storage.save(link)
            logger.info(f"Link saved: {link.id} -> {cleaned}")
        except Exception as e:
            logger.error(f"Failed to save link {link.id}: {e}")
            raise LinkHandlerError(f"Failed to save link: {e}")

        return link.id, self._generate_url(link.id)

    def get_destination(self, link_id: str) -> Optional[str]:
        """Resolve a short link ID to its destination.

        Raises:
            LinkHandlerError: If the lookup fails
        """
        try:
            link = self.storage.get(link_id)
        except Exception as e:
            logger.error(f"Failed to retrieve link {link_id}: {e}")
            raise LinkHandlerError(f"Failed to retrieve link: {e}")

        return link.destination if link else None

    def report_link(
        self,
        short_id: str,
        reason: str,
        reporter_email: Optional[str] = None,
        client_ip: Optional[str] = None,
        lytn_url: Optional[str] = None,
    ) -> Optional[str]:
        """Record a user report against a short link.

        Args:
            short_id: Reported short link ID
            reason: One of REPORT_REASONS
            reporter_email: Optional contact address; invalid values are dropped
            client_ip: Address of the reporting client
            lytn_url: Short URL as seen by the reporter (defaults to ours)

        Returns:
            ID of the new report, or None if the short link does not exist

        Raises:
            LinkHandlerError: If the input is invalid or the report cannot be saved
        """
        if not short_id:
            raise LinkHandlerError("Short ID is required")
        if reason not in REPORT_REASONS:
            logger.warning(f"Rejected report with invalid reason: {reason!r}")
            raise LinkHandlerError(f"Invalid report reason: {reason!r}")

        try:
            link = self.storage.get(short_id)
        except Exception as e:
            logger.error(f"Failed to look up reported link {short_id}: {e}")
            raise LinkHandlerError(f"Failed to retrieve link: {e}")

        if link is None:
            logger.info(f"Report for unknown link: {short_id}")
            return None

        report = ReportedLink(
            id=uuid.uuid4().hex,
            lytn_url=lytn_url or self._generate_url(short_id),
            short_id=short_id,
            destination_url=link.destination,
            reason=reason,
            reporter_email=normalize_email(reporter_email),
            reporter_ip=client_ip,
            created_at=datetime.now(timezone.utc).isoformat(),
        )

        try:
            self.storage.save_report(report)
        except Exception as e:
            logger.error(f"Failed to save report for {short_id}: {e}")
            raise LinkHandlerError(f"Failed to save report: {e}")

        logger.info(f"Link {short_id} reported as {reason} (report {report.id})")
        return report.id

    def _generate_url(self, link_id: str) -> str:
        """Generate the public short URL for a link ID."""
        domain = self.config.custom_domain or DEFAULT_DOMAIN
        return f"https://{domain}/{link_id}"
