"""Image source handling for multimodal checks.

Sources are local file paths or http(s) URLs. Local files are read here;
remote images are fetched by each client with its own transport and then
passed through `to_data_url`.
"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Iterable, List, Optional

from xiangxinai.exceptions import ValidationError, XiangxinAIError

DATA_URL_PREFIX = "data:image/jpeg;base64,"


def is_remote(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def to_data_url(data: bytes) -> str:
    return DATA_URL_PREFIX + base64.b64encode(data).decode("ascii")


def validate_image_source(image: Optional[str]) -> str:
    if image is None or not image.strip():
        raise ValidationError("Image path cannot be empty")
    return image.strip()


def validate_image_sources(images: Optional[Iterable[Optional[str]]]) -> List[str]:
    if isinstance(images, (str, bytes)):
        raise ValidationError("Images must be a list of paths or URLs, not a single string")
    sources = list(images) if images is not None else []
    if not sources:
        raise ValidationError("Images list cannot be empty")
    return [validate_image_source(source) for source in sources]


def read_local_image(path: str) -> bytes:
    """Read a local image file.

    Raises:
        ValidationError: If the file does not exist.
        XiangxinAIError: If the file exists but cannot be read.
    """
    try:
        return Path(path).read_bytes()
    except FileNotFoundError as exc:
        raise ValidationError(f"Image file not found: {path}") from exc
    except OSError as exc:
        raise XiangxinAIError(f"Failed to encode image {path}: {exc}") from exc


def fetch_failed(url: str, reason: object) -> XiangxinAIError:
    return XiangxinAIError(f"Failed to encode image {url}: {reason}")
