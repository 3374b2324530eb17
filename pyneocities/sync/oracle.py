"""Remote content-hash checks."""

import logging

from ..api import NeocitiesClient
from ..exceptions import NeocitiesError

logger = logging.getLogger(__name__)


class RemoteHashOracle:
    """Asks the site whether it already stores given content at a path.

    A failed check never aborts planning: the file is reported as not
    matching, so it gets planned for upload and any real fault shows up
    when that upload runs.
    """

    def __init__(self, client: NeocitiesClient):
        self.client = client

    def matches(self, remote_path: str, sha1: str) -> bool:
        """Check a single path.

        Args:
            remote_path: Path on the site
            sha1: SHA-1 hex digest of the local content

        Returns:
            True if the stored content is byte-identical
        """
        return self.matches_many({remote_path: sha1}).get(remote_path, False)

    def matches_many(self, hashes: dict[str, str]) -> dict[str, bool]:
        """Check several paths in one request.

        Args:
            hashes: Mapping of remote path to SHA-1 hex digest

        Returns:
            Mapping of remote path to match flag
        """
        if not hashes:
            return {}
        try:
            return self.client.upload_hash(hashes)
        except NeocitiesError as e:
            logger.warning(
                "Hash check failed for %d path(s), planning upload: %s",
                len(hashes),
                e,
            )
            return dict.fromkeys(hashes, False)
