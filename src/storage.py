"""SQLite database storage for short links.

This module handles persistence of short link records to a SQLite database.
"""

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Configure logging
logger = logging.getLogger(__name__)

REPORT_REASONS = (
    "spam",
    "malware",
    "phishing",
    "inappropriate_content",
    "copyright_violation",
    "fraud",
    "harassment",
    "other",
)
REPORT_STATUSES = ("pending", "reviewed", "resolved", "dismissed")


class StorageError(Exception):
    """Raised when storage operations fail."""

    pass


@dataclass
class ShortLink:
    """Represents a short link and its metadata.

    Attributes:
        id: Unique short link identifier
        url: URL as submitted (after cleaning)
        destination: URL the short link redirects to
        created_at: Creation timestamp (ISO 8601 format)
        ip: Client address of the creator, if known
    """

    id: str
    url: str
    destination: str
    created_at: str
    ip: Optional[str] = None


@dataclass
class ReportedLink:
    """A user report against a short link.

    Attributes:
        id: Unique report identifier
        lytn_url: Short URL the reporter saw
        short_id: Reported short link identifier
        destination_url: Destination of the link at report time
        reason: One of REPORT_REASONS
        reporter_email: Normalized reporter email, if a valid one was given
        reporter_ip: Client address of the reporter, if known
        source: Origin of the report
        status: One of REPORT_STATUSES
        created_at: Creation timestamp (ISO 8601 format)
    """

    id: str
    lytn_url: str
    short_id: str
    destination_url: str
    reason: str
    created_at: str
    reporter_email: Optional[str] = None
    reporter_ip: Optional[str] = None
    source: str = "user_reported"
    status: str = "pending"


class Storage:
    """SQLite database storage for short links.

    Stores short links in a SQLite database with schema:
    CREATE TABLE links (
        id TEXT PRIMARY KEY,
        url TEXT NOT NULL,
        destination TEXT NOT NULL,
        created_at TIMESTAMP NOT NULL,
        ip TEXT
    )

    User reports against links are kept in a separate reports table.
    """

    def __init__(self, database_path: str):
        """Initialize storage with database path.

        Args:
            database_path: Path to SQLite database file

        Raises:
            StorageError: If database initialization fails
        """
        self.database_path = Path(database_path)

        # Ensure parent directory exists
        try:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Storage initialized at: {self.database_path}")
        except Exception as e:
            logger.error(f"Failed to create database directory: {e}")
            raise StorageError(f"Failed to create database directory: {e}")

        self.initialize()

    def initialize(self) -> None:
        """Create database and schema if not exists.

        Raises:
            StorageError: If schema initialization fails
        """
        try:
            conn = sqlite3.connect(str(self.database_path))
            conn.execute("""
                CREATE TABLE IF NOT EXISTS links (
                    id TEXT PRIMARY KEY,
                    url TEXT NOT NULL,
                    destination TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL,
                    ip TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS reports (
                    id TEXT PRIMARY KEY,
                    lytn_url TEXT NOT NULL,
                    short_id TEXT NOT NULL,
                    destination_url TEXT NOT NULL,
                    reason TEXT NOT NULL,
                    reporter_email TEXT,
                    reporter_ip TEXT,
                    source TEXT NOT NULL,
                    status TEXT NOT NULL,
                    created_at TIMESTAMP NOT NULL
                )
            """)
            conn.commit()
            conn.close()
            logger.debug("Database schema initialized successfully")

        except sqlite3.Error as e:
            logger.error(f"Failed to initialize database schema: {e}")
            raise StorageError(f"Failed to initialize database schema: {e}")

    def save(self, link: ShortLink) -> None:
        """Save a short link to database.

        Args:
            link: ShortLink to save

        Raises:
            StorageError: If the ID is taken or the save fails
        """
        try:
            conn = sqlite3.connect(str(self.database_path))
            conn.execute(
                """
                INSERT INTO links (id, url, destination, created_at, ip)
                VALUES (?, ?, ?, ?, ?)
            """,
                (link.id, link.url, link.destination, link.created_at, link.ip),
            )
            conn.commit()
            conn.close()
            logger.debug(f"Short link saved to database: {link.id}")

        except sqlite3.IntegrityError as e:
            logger.warning(f"Attempted to save duplicate link ID: {link.id}")
            raise StorageError(f"Link with ID {link.id} already exists: {e}")
        except sqlite3.Error as e:
            logger.error(f"Database error saving link {link.id}: {e}")
            raise StorageError(f"Failed to save link {link.id}: {e}")

    def get(self, link_id: str) -> Optional[ShortLink]:
        """Fetch a short link by ID.

        Args:
            link_id: Short link identifier

        Returns:
            ShortLink, or None if no link has this ID

        Raises:
            StorageError: If the query fails
        """
        try:
            conn = sqlite3.connect(str(self.database_path))
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                """
                SELECT id, url, destination, created_at, ip
                FROM links
                WHERE id = ?
            """,
                (link_id,),
            ).fetchone()
            conn.close()

        except sqlite3.Error as e:
            logger.error(f"Database error loading link {link_id}: {e}")
            raise StorageError(f"Failed to load link {link_id}: {e}")

        if row is None:
            logger.debug(f"Link not found in database: {link_id}")
            return None

        return ShortLink(
            id=row["id"],
            url=row["url"],
            destination=row["destination"],
            created_at=row["created_at"],
            ip=row["ip"],
        )

    def exists(self, link_id: str) -> bool:
        """Check if a short link exists in database.

        Raises:
            StorageError: If the query fails
        """
        return self.get(link_id) is not None

    def save_report(self, report: ReportedLink) -> None:
        """Save a link report to database.

        Raises:
            StorageError: If the save fails
        """
        try:
            conn = sqlite3.connect(str(self.database_path))
            conn.execute(
                """
                INSERT INTO reports (
                    id, lytn_url, short_id, destination_url, reason,
                    reporter_email, reporter_ip, source, status, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    report.id,
                    report.lytn_url,
                    report.short_id,
                    report.destination_url,
                    report.reason,
                    report.reporter_email,
                    report.reporter_ip,
                    report.source,
                    report.status,
                    report.created_at,
                ),
            )
            conn.commit()
            conn.close()
            logger.debug(f"Report saved to database: {report.id}")

        except sqlite3.Error as e:
            logger.error(f"Database error saving report {report.id}: {e}")
            raise StorageError(f"Failed to save report {report.id}: {e}")

    def get_report(self, report_id: str) -> Optional[ReportedLink]:
        """Fetch a link report by ID, or None if it does not exist.

        Raises:
            StorageError: If the query fails
        """
        try:
            conn = sqlite3.connect(str(self.database_path))
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                "SELECT * FROM reports WHERE id = ?", (report_id,)
            ).fetchone()
            conn.close()

        except sqlite3.Error as e:
            logger.error(f"Database error loading report {report_id}: {e}")
            raise StorageError(f"Failed to load report {report_id}: {e}")

        if row is None:
            return None
        return ReportedLink(**dict(row))
