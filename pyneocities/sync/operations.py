"""Sync operations wrapper: one API or filesystem call per action."""

import logging
from pathlib import Path
from typing import Any, Callable, Optional

from ..api import NeocitiesClient
from ..exceptions import NeocitiesDownloadError, NeocitiesUploadError
from ..utils import is_safe_relative_path

logger = logging.getLogger(__name__)


class SyncOperations:
    """Unified operations for upload/download/delete with a common interface."""

    def __init__(self, client: NeocitiesClient, site_url: Optional[str] = None):
        """Initialize sync operations.

        Args:
            client: Neocities API client
            site_url: Public base URL of the site (needed for downloads)
        """
        self.client = client
        self.site_url = site_url

    def upload_file(self, local_path: Path, remote_path: str) -> Any:
        """Upload a local file to the site.

        Args:
            local_path: Local file to upload
            remote_path: Remote path (relative path for the file)

        Returns:
            Upload response from API
        """
        if not local_path.is_file():
            raise NeocitiesUploadError(f"{local_path} does not exist locally")
        return self.client.upload(local_path, remote_path)

    def download_file(
        self,
        remote_path: str,
        local_path: Path,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Path:
        """Download a site file to local storage.

        Args:
            remote_path: Path of the file on the site
            local_path: Local path where file should be saved
            progress_callback: Optional progress callback
                function(bytes_downloaded, total_bytes)

        Returns:
            Path where file was saved
        """
        if self.site_url is None:
            raise NeocitiesDownloadError("Site URL unknown, cannot download")
        if not is_safe_relative_path(remote_path):
            raise NeocitiesDownloadError(
                f"Refusing to write outside the local root: {remote_path}"
            )

        # Ensure parent directory exists
        local_path.parent.mkdir(parents=True, exist_ok=True)

        url = self.client.file_url(self.site_url, remote_path)
        return self.client.download(url, local_path, progress_callback)

    def delete_remote(self, remote_path: str) -> Any:
        """Delete a site file or directory.

        Args:
            remote_path: Path on the site

        Returns:
            Delete response from API
        """
        return self.client.delete([remote_path])

    def make_local_directory(self, local_root: Path, relative_path: str) -> Path:
        """Create a local directory; existing directories are fine.

        Raises:
            OSError: If the directory cannot be created
        """
        directory = local_root / relative_path
        directory.mkdir(parents=True, exist_ok=True)
        return directory
