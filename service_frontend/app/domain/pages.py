"""
Static page table and catch-all error pages.
"""

from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

from fastapi import Response
from fastapi.responses import FileResponse, HTMLResponse

from shared.logging import get_logger

PAGE_ROUTES: Tuple[Tuple[str, str], ...] = (
    ("/yz", "apps.html"),
    ("/up", "games.html"),
    ("/play.html", "games.html"),
    ("/vk", "settings.html"),
    ("/rx", "tabs.html"),
    ("/", "index.html"),
)

NOT_FOUND_PAGE = "404.html"
SERVER_ERROR_PAGE = "500.html"

_FALLBACK_NOT_FOUND = "<!DOCTYPE html><html><head><title>404</title></head><body><h1>404 Not Found</h1></body></html>"
_FALLBACK_SERVER_ERROR = "<!DOCTYPE html><html><head><title>500</title></head><body><h1>500 Internal Server Error</h1></body></html>"


class PageCatalog:
    """Serves files from the content root for the fixed page routes."""

    def __init__(self, static_dir: Union[str, Path], routes: Iterable[Tuple[str, str]] = PAGE_ROUTES):
        self.static_dir = Path(static_dir)
        self.routes = tuple(routes)
        self.logger = get_logger("frontend.pages")

    def page_path(self, filename: str) -> Path:
        return self.static_dir / filename

    def serve(self, filename: str) -> Response:
        """Serve a page file, or the 404 page if it is missing."""
        path = self.page_path(filename)
        if not path.is_file():
            self.logger.warning("Page file missing", file=filename)
            return self.not_found()

        self.logger.info("Serving page", file=filename)
        return FileResponse(path, media_type="text/html")

    def not_found(self) -> Response:
        return self._error_page(NOT_FOUND_PAGE, 404, _FALLBACK_NOT_FOUND)

    def server_error(self) -> Response:
        return self._error_page(SERVER_ERROR_PAGE, 500, _FALLBACK_SERVER_ERROR)

    def _error_page(self, filename: str, status_code: int, fallback: str) -> Response:
        content = self._read(filename)
        return HTMLResponse(content=content if content is not None else fallback, status_code=status_code)

    def _read(self, filename: str) -> Optional[str]:
        path = self.page_path(filename)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            self.logger.error("Failed to read error page", file=filename, error=str(e))
            return None
