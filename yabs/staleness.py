import pathlib

#: The minimum amount by which a source must be newer than its destination
#: before the destination is regenerated.
STALENESS_THRESHOLD_NS = 1_000_000_000


def is_source_newer(source: pathlib.Path, destination: pathlib.Path) -> bool:
    """
    Return True if ``source`` was modified at least one second after ``destination``.

    Both paths must exist.
    """
    source_mtime = source.stat().st_mtime_ns
    destination_mtime = destination.stat().st_mtime_ns
    return source_mtime - destination_mtime >= STALENESS_THRESHOLD_NS


def needs_update(source: pathlib.Path, destination: pathlib.Path) -> bool:
    """A destination needs an update when it is missing, or older than its source."""
    if not destination.exists():
        return True
    return is_source_newer(source, destination)
