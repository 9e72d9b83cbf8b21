import zlib

from .errors import WorldFormatError


def _has_zlib_header(data):
    if len(data) < 2:
        return False
    cmf, flg = data[0], data[1]
    return (cmf & 0x0F) == 8 and ((cmf << 8) | flg) % 31 == 0


def inflate(data) -> bytes:
    """Decompresses a region payload.

    Worlds store zlib streams; bare deflate streams are accepted too.
    """
    wbits = zlib.MAX_WBITS if _has_zlib_header(data) else -zlib.MAX_WBITS
    dctx = zlib.decompressobj(wbits)
    try:
        out = dctx.decompress(bytes(data))
        out += dctx.flush()
    except zlib.error as e:
        raise WorldFormatError(f"Could not decompress data: {e}") from e
    if not dctx.eof:
        raise WorldFormatError("Could not decompress data: truncated stream")
    return out
