DEFAULT_SNAPSHOT_INTERVAL = 10


def should_take_snapshot(
    version: int, interval: int = DEFAULT_SNAPSHOT_INTERVAL
) -> bool:
    """
    Returns True when a snapshot is due at `version`, i.e. the version is
    positive and an exact multiple of `interval`. Version 0 never qualifies.
    """
    if interval <= 0:
        raise ValueError(f"Snapshot interval must be positive, got {interval}")
    return version > 0 and version % interval == 0
