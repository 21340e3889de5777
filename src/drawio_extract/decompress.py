"""
Decoding of compressed draw.io page payloads.

draw.io stores a compressed page as ``base64(raw_deflate(percent_encode(xml)))``
inside the ``<diagram>`` element.  :func:`decompress_page` reverses that
pipeline and never raises: every failure is reported as a :class:`Failed`
value carrying the stage that broke.
"""

from __future__ import annotations

import base64
import binascii
import logging
import xml.etree.ElementTree as ET
import zlib
from dataclasses import dataclass
from typing import Union
from urllib.parse import quote, unquote

logger = logging.getLogger("drawio-extract")

# Characters draw.io's encodeURIComponent leaves untouched.
_SAFE_CHARS = "~()*!.'"


@dataclass(frozen=True)
class Decoded:
    """A recovered page: the XML text and its ``mxGraphModel`` element."""
    text: str
    model: ET.Element


@dataclass(frozen=True)
class Failed:
    """A payload that could not be recovered."""
    reason: str


DecodeResult = Union[Decoded, Failed]


def _inflate_raw(data: bytes) -> bytes:
    """Inflate a raw deflate stream (no zlib/gzip header)."""
    inflater = zlib.decompressobj(-zlib.MAX_WBITS)
    out = inflater.decompress(data) + inflater.flush()
    if not inflater.eof:
        raise zlib.error("truncated deflate stream")
    return out


def _deflate_raw(data: bytes) -> bytes:
    compressor = zlib.compressobj(
        zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, -zlib.MAX_WBITS,
    )
    return compressor.compress(data) + compressor.flush()


def _find_model(text: str) -> DecodeResult:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        return Failed(f"xml: {exc}")
    if root.tag == "mxGraphModel":
        return Decoded(text, root)
    model = root.find(".//mxGraphModel")
    if model is None:
        return Failed("no mxGraphModel")
    return Decoded(text, model)


def decompress_page(raw: str, page_name: str = "") -> DecodeResult:
    """Recover the ``mxGraphModel`` held in a page's raw inner text.

    Args:
        raw: Text content of the ``<diagram>`` element.
        page_name: Used only for log messages.

    Returns:
        :class:`Decoded` on success, :class:`Failed` otherwise.
    """
    payload = (raw or "").strip()
    if not payload:
        return Failed("empty payload")

    # Uncompressed page body stored as (escaped) XML text.
    if payload.startswith("<"):
        result = _find_model(payload)
    else:
        result = _decode_compressed(payload)

    if isinstance(result, Failed):
        logger.warning("Could not decompress page '%s': %s", page_name, result.reason)
    return result


def _decode_compressed(payload: str) -> DecodeResult:
    try:
        data = base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        return Failed(f"base64: {exc}")
    try:
        inflated = _inflate_raw(data)
    except zlib.error as exc:
        return Failed(f"inflate: {exc}")
    try:
        text = unquote(inflated.decode("utf-8"), encoding="utf-8", errors="strict")
    except UnicodeDecodeError as exc:
        return Failed(f"utf-8: {exc}")
    return _find_model(text)


def compress_page(xml_text: str) -> str:
    """Encode *xml_text* the way draw.io stores a compressed page."""
    encoded = quote(xml_text, safe=_SAFE_CHARS).encode("ascii")
    return base64.b64encode(_deflate_raw(encoded)).decode("ascii")
