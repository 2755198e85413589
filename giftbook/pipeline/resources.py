from __future__ import annotations

import base64
import binascii
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import requests

from .. import config
from .options import BookOptions


logger = logging.getLogger(__name__)


class ResourceError(RuntimeError):
    pass


@dataclass(frozen=True)
class ResourceSet:
    main_font: Optional[bytes] = None
    gift_label_font: Optional[bytes] = None
    formal_font: Optional[bytes] = None
    amount_font: Optional[bytes] = None
    cover_font: Optional[bytes] = None
    background_image: Optional[bytes] = None
    cover_image: Optional[bytes] = None
    back_cover_image: Optional[bytes] = None


def fetch_resource(locator: Optional[str]) -> Optional[bytes]:
    if not locator:
        return None
    if locator.startswith(("http://", "https://")):
        response = requests.get(locator, timeout=config.FETCH_TIMEOUT)
        response.raise_for_status()
        return response.content
    path = Path(locator)
    if not path.is_file():
        raise FileNotFoundError(f"Resource not found: {locator}")
    return path.read_bytes()


def load_image(locator: Optional[str]) -> Optional[bytes]:
    if locator and locator.startswith("data:image"):
        _, _, payload = locator.partition(",")
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ResourceError("Inline image is not valid base64") from exc
    return fetch_resource(locator)


def load_resources(options: BookOptions, max_workers: int | None = None) -> ResourceSet:
    """Fetch every font and image at once; the first failure aborts the book."""
    jobs: Dict[str, Tuple[Callable[[Optional[str]], Optional[bytes]], Optional[str]]] = {
        "main_font": (fetch_resource, options.main_font),
        "gift_label_font": (fetch_resource, options.gift_label_font),
        "formal_font": (fetch_resource, options.formal_font),
        "amount_font": (fetch_resource, options.resolved_amount_font),
        "cover_font": (fetch_resource, options.resolved_cover_font),
        "background_image": (load_image, options.background_image),
        "cover_image": (load_image, options.cover_image),
        "back_cover_image": (load_image, options.back_cover_image),
    }
    pending = {key: job for key, job in jobs.items() if job[1]}
    if not pending:
        return ResourceSet()

    workers = max_workers or min(config.FETCH_WORKERS, len(pending))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {key: executor.submit(fn, locator) for key, (fn, locator) in pending.items()}
        loaded = {key: future.result() for key, future in futures.items()}
    logger.info("Loaded %d resources", len(loaded))
    return ResourceSet(**loaded)
