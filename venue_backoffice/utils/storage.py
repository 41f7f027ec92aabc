# venue_backoffice/utils/storage.py
import os
import re
import time
from typing import Optional

_UNSAFE = re.compile(r"[^a-z0-9]")


def sanitize_segment(value: str) -> str:
    """Lower-case and replace anything outside [a-z0-9] with '-'"""
    return _UNSAFE.sub("-", value.lower())


def build_image_path(venue_name: str, product_name: str, filename: str,
                     timestamp_ms: Optional[int] = None) -> str:
    """Storage path for a product image: ``{venue}/{product}-{millis}{ext}``"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    extension = os.path.splitext(filename or "")[1]
    return f"{sanitize_segment(venue_name)}/{sanitize_segment(product_name or 'product')}-{timestamp_ms}{extension}"
