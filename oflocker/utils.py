"""Path helpers shared by the publisher and the reconciler"""

import os
from typing import Iterable, List, Optional

# separator used for relative filenames inside a snapshot
WIRE_SEPARATOR = '\\'

NETWORK_PREFIXES = ('s3://', '\\\\', '//')


def _split(path: str) -> List[str]:
    return [part for part in path.replace('\\', '/').split('/') if part]


def _fold(path: str) -> str:
    return path.replace('\\', '/').rstrip('/').lower()


def is_under_root(filename: str, root: str) -> bool:
    """Check, case-insensitively, whether filename lives below root"""
    folded_root = _fold(root)
    folded = _fold(filename)
    return folded.startswith(folded_root + '/') and len(folded) > len(folded_root) + 1


def relative_filename(filename: str, root: str) -> str:
    """Strip root from filename and join the rest with the wire separator"""
    rest = filename.replace('\\', '/').rstrip('/')[len(_fold(root)):]
    return WIRE_SEPARATOR.join(_split(rest))


def absolute_filename(relative: str, root: str) -> str:
    """Re-root a wire filename under the local share"""
    return os.path.normpath(os.path.join(root, *_split(relative)))


def matches_exception(relative: str, exceptions: Optional[Iterable[str]]) -> bool:
    """Case-sensitive suffix check against the configured exceptions"""
    if not exceptions:
        return False
    return any(relative.endswith(exc) for exc in exceptions)


def get_host_name(remote_location: str) -> Optional[str]:
    """Host segment of a network-style location, or None for plain paths"""
    for prefix in NETWORK_PREFIXES:
        index = remote_location.find(prefix)
        if index < 0:
            continue
        rest = remote_location[index + len(prefix):]
        for separator in ('\\', '/'):
            if separator in rest:
                rest = rest[:rest.index(separator)]
        return rest
    return None


def staging_filename(remote_location: str, snapshot_name: str) -> str:
    """Local name for the copy of a peer's snapshot.

    Locations without a host segment all map to ``_<snapshot_name>``.
    """
    return f"{get_host_name(remote_location) or ''}_{snapshot_name}"
