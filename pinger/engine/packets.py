# pinger/engine/packets.py
import ipaddress
import struct
from dataclasses import dataclass
from typing import Optional

ICMP_ECHO_REPLY = 0
ICMP_ECHO_REQUEST = 8

IP_HEADER_MIN = 20
ICMP_HEADER_LEN = 8
MIN_DATAGRAM = IP_HEADER_MIN + ICMP_HEADER_LEN

_ICMP_HEADER = struct.Struct("!BBHHH")


@dataclass(frozen=True)
class IcmpMessage:
    type: int
    code: int
    checksum: int
    identifier: int
    sequence: int
    source: ipaddress.IPv4Address


def checksum(data: bytes) -> int:
    """Internet checksum (RFC 1071) over *data*.

    Big-endian 16-bit words are summed, an odd trailing byte is padded with
    a zero low-order byte, carries are folded back in and the sum is
    complemented.
    """
    if len(data) % 2:
        data += b"\x00"

    total = 0
    for i in range(0, len(data), 2):
        total += (data[i] << 8) + data[i + 1]

    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)

    return ~total & 0xFFFF


def build_echo_request(identifier: int, sequence: int, payload_size: int = 20) -> bytes:
    """Build one ICMP Echo Request with a valid checksum."""
    payload = b"\x00" * max(0, payload_size)
    header = _ICMP_HEADER.pack(ICMP_ECHO_REQUEST, 0, 0, identifier, sequence)
    csum = checksum(header + payload)
    header = _ICMP_HEADER.pack(ICMP_ECHO_REQUEST, 0, csum, identifier, sequence)
    return header + payload


def decode_echo_request(packet: bytes) -> Optional[tuple[int, int]]:
    """Return (identifier, sequence) of a bare ICMP Echo Request, else None."""
    if len(packet) < ICMP_HEADER_LEN:
        return None
    icmp_type, _code, _csum, ident, seq = _ICMP_HEADER.unpack_from(packet, 0)
    if icmp_type != ICMP_ECHO_REQUEST:
        return None
    return ident, seq


def decode_icmp(datagram: bytes) -> Optional[IcmpMessage]:
    """
    Decode an IPv4 datagram carrying ICMP, as read from a raw ICMP socket.

    The IP header length comes from the IHL field, so options are skipped.
    Anything too short or malformed decodes to None.
    """
    if len(datagram) < MIN_DATAGRAM:
        return None

    version = datagram[0] >> 4
    ihl = (datagram[0] & 0x0F) * 4
    if version != 4 or ihl < IP_HEADER_MIN:
        return None
    if len(datagram) < ihl + ICMP_HEADER_LEN:
        return None

    source = ipaddress.IPv4Address(datagram[12:16])
    icmp_type, code, csum, ident, seq = _ICMP_HEADER.unpack_from(datagram, ihl)
    return IcmpMessage(icmp_type, code, csum, ident, seq, source)
