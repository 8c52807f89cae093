"""Utility functions for SID handling, DN parsing and attribute access."""

import re
import struct
from typing import Any, Dict, List, Optional, Tuple
from ldap3.core.exceptions import LDAPInvalidDnError
from ldap3.utils.dn import parse_dn

# revision(1) + subauth_count(1) + authority(6)
SID_HEADER_LENGTH = 8

# RFC 4514 escape: backslash followed by a hex pair or a single character
DN_ESCAPE = re.compile(r'\\([0-9a-fA-F]{2}|.)', re.DOTALL)


def parse_sid(sid_bytes: bytes) -> str:
    """
    Parse binary SID to string representation.

    Args:
        sid_bytes: Binary SID data

    Returns:
        SID string (e.g., S-1-5-21-...)
    """
    try:
        # SID structure: revision(1) + subauth_count(1) + authority(6) + subauths(4*n)
        revision = sid_bytes[0]
        subauth_count = sid_bytes[1]
        authority = struct.unpack('>Q', b'\x00\x00' + sid_bytes[2:8])[0]

        sid_parts = [f'S-{revision}', str(authority)]

        for i in range(subauth_count):
            offset = 8 + (i * 4)
            subauth = struct.unpack('<I', sid_bytes[offset:offset + 4])[0]
            sid_parts.append(str(subauth))

        return '-'.join(sid_parts)
    except (IndexError, struct.error):
        return ''


def replace_rid(sid_bytes: bytes, rid: int) -> bytes:
    """
    Replace the relative ID (last sub-authority) of a binary SID.

    Args:
        sid_bytes: Binary SID data
        rid: New relative ID

    Returns:
        Binary SID with its trailing 4 bytes set to rid, little-endian

    Raises:
        ValueError: If the SID has no sub-authority to replace
    """
    if len(sid_bytes) < SID_HEADER_LENGTH + 4:
        raise ValueError(f"SID too short to carry a RID ({len(sid_bytes)} bytes)")

    try:
        packed = struct.pack('<I', int(rid))
    except struct.error:
        raise ValueError(f"RID out of range: {rid}")

    return bytes(sid_bytes[:-4]) + packed


def is_dn(identifier: str) -> bool:
    """Check whether an identifier parses as a distinguished name of two or more RDNs."""
    try:
        return len(parse_dn(identifier, escape=True, strip=True)) > 1
    except LDAPInvalidDnError:
        return False


def dn_to_name(distinguished_name: str) -> str:
    """
    Extract the display name (first RDN value) from a distinguished name.

    Args:
        distinguished_name: Full DN, e.g. CN=Sales,OU=Groups,DC=example,DC=com

    Returns:
        The first RDN value with RFC 4514 escapes decoded, e.g. Sales.
        A value that is not a DN is returned stripped.
    """
    try:
        _, value, _ = parse_dn(distinguished_name, escape=True, strip=True)[0]
    except LDAPInvalidDnError:
        return distinguished_name.strip()
    return _unescape_dn_value(value)


def nice_names(distinguished_names: List[str]) -> List[str]:
    """Convert a list of DNs to their display names."""
    return [dn_to_name(dn) for dn in distinguished_names]


def domain_to_base_dn(domain: str) -> str:
    """Convert a DNS domain (example.com) to a base DN (DC=example,DC=com)."""
    return ','.join([f'DC={part}' for part in domain.split('.')])


def get_values(entry: Dict[str, Any], name: str, raw: bool = False) -> List[Any]:
    """
    Get all values of an attribute from a search result entry.

    Attribute names are matched case-insensitively and a 'count'
    pseudo-value is tolerated either as a key or inside the value list.

    Args:
        entry: Search result entry
        name: Attribute name
        raw: Return values undecoded

    Returns:
        List of values (empty if the attribute is absent)
    """
    if not entry:
        return []

    values = None
    for key, value in entry.items():
        if key.lower() == name.lower():
            values = value
            break

    if values is None:
        return []

    if isinstance(values, dict):
        count = values.get('count')
        values = [values[i] for i in sorted(k for k in values if isinstance(k, int))]
        if count is not None:
            values = values[:int(count)]
    elif not isinstance(values, (list, tuple)):
        values = [values]

    if raw:
        return list(values)

    return [_decode(value) for value in values]


def get_value(entry: Dict[str, Any], name: str, raw: bool = False) -> Any:
    """Get the first value of an attribute, or None."""
    values = get_values(entry, name, raw=raw)
    return values[0] if values else None


def get_ranged_values(entry: Dict[str, Any], name: str) -> Tuple[List[str], Optional[int]]:
    """
    Get the values of an attribute that may have been returned in ranges.

    Active Directory caps the values returned for a large multi-valued
    attribute (1500 for member) and names the attribute after the slice it
    holds, e.g. member;range=0-1499. The last slice ends in '*'.

    Args:
        entry: Search result entry
        name: Attribute name without range option

    Returns:
        (values, next_start) where next_start is the first index of the
        following slice, or None when no values remain
    """
    prefix = f'{name.lower()};range='
    for key in (entry or {}):
        if key.lower().startswith(prefix):
            end = key.rsplit('-', 1)[-1]
            next_start = None if end == '*' else int(end) + 1
            return get_values(entry, key), next_start

    return get_values(entry, name), None


def _decode(value: Any) -> str:
    if isinstance(value, bytes):
        try:
            return value.decode('utf-8')
        except UnicodeDecodeError:
            return value.hex()
    return str(value)


def _unescape_dn_value(value: str) -> str:
    """Decode \\XX hex pairs (UTF-8 octets) and \\c escapes of an RFC 4514 value."""
    raw = bytearray()
    position = 0
    for match in DN_ESCAPE.finditer(value):
        raw += value[position:match.start()].encode('utf-8')
        token = match.group(1)
        raw += bytes([int(token, 16)]) if len(token) == 2 else token.encode('utf-8')
        position = match.end()
    raw += value[position:].encode('utf-8')
    return raw.decode('utf-8', errors='replace')
