def with_optimistic_update(apply, rollback, operation):
    """
    Run an operation behind a tentative local update

    Parameters:
    - apply: callable that applies the tentative update and returns a snapshot
             of the state it replaced
    - rollback: callable that receives that snapshot and restores it
    - operation: callable doing the real work; its return value is returned

    If the operation raises, the snapshot is restored and the exception
    propagates unchanged.
    """
    snapshot = apply()
    try:
        return operation()
    except BaseException:
        rollback(snapshot)
        raise
