"""Loading artwork from local files and remote URLs."""

import hashlib
from io import BytesIO
from pathlib import Path
from typing import Optional

import requests
from PIL import Image, UnidentifiedImageError

from ..config import settings
from ..errors import AssetLoadError
from ..utils import get_logger, http_retry

logger = get_logger(__name__)

USER_AGENT = "tcg-cardgen/0.1 (+artwork fetch)"

REMOTE_SCHEMES = ("http://", "https://")


def is_remote(source: str) -> bool:
    return source.lower().startswith(REMOTE_SCHEMES)


class ImageLoader:
    """
    Decodes images into RGBA, caching them by resolved path or URL.

    The in-memory cache is shared by every card of a run. Reads take no
    lock; a miss under a race may decode the same file twice, and the first
    insert wins.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        cache_dir: Optional[Path] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ):
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})
        cache = cache_dir or settings.image_cache_dir
        self.cache_dir = Path(cache) if cache else None
        self.timeout = timeout or settings.http_timeout_seconds
        self._fetch = http_retry(max_attempts or settings.http_max_attempts)(self._http_get)
        self._cache: dict[str, Image.Image] = {}

    def load(self, source: str, base_dir: Optional[Path] = None) -> Image.Image:
        """
        Load an image from a path or http(s) URL.

        Args:
            source: Local path or URL
            base_dir: Directory tried first for relative local paths

        Returns:
            The decoded image in RGBA mode

        Raises:
            AssetLoadError: If the source is missing, unreachable or not an image
        """
        source = source.strip()
        if not source:
            raise AssetLoadError(source, "empty image source")

        key = source if is_remote(source) else str(self._local_path(source, base_dir))
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        data = self._read_remote(source) if is_remote(source) else self._read_local(Path(key))
        image = self._decode(source, data)
        return self._cache.setdefault(key, image)

    @staticmethod
    def _local_path(source: str, base_dir: Optional[Path]) -> Path:
        path = Path(source).expanduser()
        if not path.is_absolute() and base_dir is not None:
            candidate = base_dir / path
            if candidate.exists():
                return candidate
        return path

    @staticmethod
    def _read_local(path: Path) -> bytes:
        if not path.is_file():
            raise AssetLoadError(str(path), "image file not found")
        try:
            return path.read_bytes()
        except OSError as e:
            raise AssetLoadError(str(path), f"cannot read file: {e}") from e

    def _cache_path(self, url: str) -> Optional[Path]:
        if self.cache_dir is None:
            return None
        url_hash = hashlib.md5(url.encode()).hexdigest()[:16]
        return self.cache_dir / f"artwork_{url_hash}"

    def _http_get(self, url: str) -> requests.Response:
        return self._session.get(url, timeout=self.timeout)

    def _read_remote(self, url: str) -> bytes:
        cache_path = self._cache_path(url)
        if cache_path is not None and cache_path.is_file():
            try:
                data = cache_path.read_bytes()
                logger.debug(f"Artwork cache hit for {url}")
                return data
            except OSError as e:
                logger.warning(f"Unreadable artwork cache for {url}, fetching again: {e}")

        try:
            response = self._fetch(url)
            response.raise_for_status()
        except requests.RequestException as e:
            raise AssetLoadError(url, f"fetch failed: {e}") from e

        data = response.content
        logger.debug(f"Fetched {len(data)} bytes from {url}")

        if cache_path is not None:
            try:
                cache_path.parent.mkdir(parents=True, exist_ok=True)
                cache_path.write_bytes(data)
            except OSError as e:
                logger.warning(f"Failed to cache artwork for {url}: {e}")
        return data

    @staticmethod
    def _decode(source: str, data: bytes) -> Image.Image:
        try:
            with Image.open(BytesIO(data)) as image:
                return image.convert("RGBA")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise AssetLoadError(source, f"cannot decode image: {e}") from e
