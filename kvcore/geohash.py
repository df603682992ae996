"""Geohash encoding of coordinates and neighbour search ranges."""

from __future__ import annotations

import base64
import math

_MASK64 = (1 << 64) - 1
DEFAULT_BIT_SIZE = 64  # 32 bits for latitude, 32 for longitude

_GEO_ALPHABET = "0123456789bcdefghjkmnpqrstuvwxyz"
_STD_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_TO_GEO = str.maketrans(_STD_ALPHABET, _GEO_ALPHABET)

_DR = math.pi / 180.0
EARTH_RADIUS = 6372797.560856
MERCATOR_MAX = 20037726.37

Box = list[list[float]]


def _encode(latitude: float, longitude: float, bit_size: int) -> tuple[bytes, Box]:
    """Return the geohash of bit_size bits and its box [[lng range], [lat range]]."""
    box = [[-180.0, 180.0], [-90.0, 90.0]]
    position = (longitude, latitude)
    code = bytearray((bit_size + 7) // 8)
    precision = 0
    while precision < bit_size:
        for direction, value in enumerate(position):
            low, high = box[direction]
            mid = (low + high) / 2
            if value < mid:
                box[direction][1] = mid
            else:
                box[direction][0] = mid
                code[precision >> 3] |= 1 << (7 - (precision & 7))
            precision += 1
            if precision == bit_size:
                break
    return bytes(code), box


def _decode(code: bytes) -> Box:
    box = [[-180.0, 180.0], [-90.0, 90.0]]
    direction = 0
    for byte in code:
        for shift in range(7, -1, -1):
            mid = (box[direction][0] + box[direction][1]) / 2
            if byte & (1 << shift):
                box[direction][0] = mid
            else:
                box[direction][1] = mid
            direction = 1 - direction
    return box


def to_int(buf: bytes) -> int:
    """Read the first 8 bytes of buf, zero padded, as a big-endian integer."""
    return int.from_bytes(bytes(buf[:8]).ljust(8, b"\x00"), "big")


def from_int(code: int) -> bytes:
    """Write code as 8 big-endian bytes."""
    return (code & _MASK64).to_bytes(8, "big")


def to_string(buf: bytes) -> str:
    """Return the base32 geohash text of buf."""
    text = base64.b32encode(bytes(buf)).decode("ascii").rstrip("=")
    return text.translate(_TO_GEO)


def encode(latitude: float, longitude: float) -> int:
    """Return the 64-bit geohash of a coordinate."""
    code, _ = _encode(latitude, longitude, DEFAULT_BIT_SIZE)
    return to_int(code)


def decode(code: int) -> tuple[float, float]:
    """Return the (latitude, longitude) at the centre of a 64-bit geohash."""
    box = _decode(from_int(code))
    lng = (box[0][0] + box[0][1]) / 2
    lat = (box[1][0] + box[1][1]) / 2
    return lat, lng


def distance(
    latitude1: float, longitude1: float, latitude2: float, longitude2: float
) -> float:
    """Return the great-circle distance between two coordinates in metres."""
    rad_lat1 = latitude1 * _DR
    rad_lat2 = latitude2 * _DR
    a = rad_lat1 - rad_lat2
    b = longitude1 * _DR - longitude2 * _DR
    return 2 * EARTH_RADIUS * math.asin(
        math.sqrt(
            math.sin(a / 2) ** 2
            + math.cos(rad_lat1) * math.cos(rad_lat2) * math.sin(b / 2) ** 2
        )
    )


def _estimate_precision(radius_meters: float, latitude: float) -> int:
    if radius_meters == 0:
        return DEFAULT_BIT_SIZE - 1
    precision = 1
    while radius_meters < MERCATOR_MAX:
        radius_meters *= 2
        precision += 1
    precision -= 2
    if latitude > 66 or latitude < -66:
        precision -= 1
        if latitude > 80 or latitude < -80:
            precision -= 1
    # the step count is unsigned: going below zero wraps to the top
    if precision < 0 or precision > 32:
        precision = 32
    elif precision < 1:
        precision = 1
    return precision * 2 - 1


def to_range(scope: bytes, precision: int) -> tuple[int, int]:
    """Return the [lower, upper) 64-bit range of codes sharing a precision-bit prefix."""
    lower = to_int(scope)
    width = (1 << (64 - precision)) & _MASK64
    return lower, (lower + width) & _MASK64


def _valid_lat(lat: float) -> float:
    return max(-90.0, min(90.0, lat))


def _valid_lng(lng: float) -> float:
    if lng > 180:
        return lng - 360
    if lng < -180:
        return lng + 360
    return lng


def get_neighbours(
    latitude: float, longitude: float, radius_meters: float
) -> list[tuple[int, int]]:
    """Return code ranges of the 9 blocks around a coordinate covering the radius.

    The blocks run row by row from upper left to lower right; the fifth is
    the block holding the coordinate.
    """
    precision = _estimate_precision(radius_meters, latitude)
    center, box = _encode(latitude, longitude, precision)
    height = box[0][1] - box[0][0]
    width = box[1][1] - box[1][0]
    center_lng = (box[0][1] + box[0][0]) / 2
    center_lat = (box[1][1] + box[1][0]) / 2
    max_lat = _valid_lat(center_lat + height)
    min_lat = _valid_lat(center_lat - height)
    max_lng = _valid_lng(center_lng + width)
    min_lng = _valid_lng(center_lng - width)

    def block(lat: float, lng: float) -> tuple[int, int]:
        code, _ = _encode(lat, lng, precision)
        return to_range(code, precision)

    return [
        block(max_lat, min_lng),
        block(max_lat, center_lng),
        block(max_lat, max_lng),
        block(center_lat, min_lng),
        to_range(center, precision),
        block(center_lat, max_lng),
        block(min_lat, min_lng),
        block(min_lat, center_lng),
        block(min_lat, max_lng),
    ]