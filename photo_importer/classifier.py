"""Filename classification for photos and their sidecar files."""

from typing import Optional

RAW_EXTENSIONS = ('cr2', 'nef', 'arw', 'dng', 'raw', 'orf')
JPEG_EXTENSIONS = ('jpg', 'jpeg')

RAW_TREE = 'RAW'
JPEG_TREE = 'JPEG'


def _has_extension(name: str, extensions) -> bool:
    lowered = name.lower()
    return any(lowered.endswith('.' + ext) for ext in extensions)


def is_raw(name: str) -> bool:
    """Check if a filename is a raw sensor file."""
    return _has_extension(name, RAW_EXTENSIONS)


def is_photo_jpeg(name: str) -> bool:
    """Check if a filename is a JPEG photo."""
    return _has_extension(name, JPEG_EXTENSIONS)


def is_photo(name: str) -> bool:
    return is_raw(name) or is_photo_jpeg(name)


def sidecar_format_tag(name: str) -> Optional[str]:
    """
    Extract the format tag from a sidecar filename.

    Sidecars are named ``<base>.<FORMAT>.<ext>``, e.g. ``IMG_0001.CR2.xmp``.

    Args:
        name: Filename to inspect

    Returns:
        Uppercased second-to-last component, or None if the name has fewer
        than three dot-separated components
    """
    parts = name.split('.')
    if len(parts) < 3:
        return None
    return parts[-2].upper()


def classify(name: str) -> Optional[str]:
    """
    Get the destination tree implied by a filename alone.

    A sidecar format tag naming a known format decides first, so an
    extracted preview such as ``IMG_0020.CR2.jpg`` follows its raw file.
    Otherwise the literal extension decides.

    Args:
        name: Filename to classify

    Returns:
        RAW_TREE or JPEG_TREE, or None if the name does not imply a tree
    """
    tag = sidecar_format_tag(name)
    if tag is not None:
        if tag.lower() in RAW_EXTENSIONS:
            return RAW_TREE
        if tag.lower() in JPEG_EXTENSIONS:
            return JPEG_TREE

    if is_raw(name):
        return RAW_TREE
    if is_photo_jpeg(name):
        return JPEG_TREE
    return None
