class IdleWatchError(RuntimeError):
    pass


class FatalError(IdleWatchError):
    # Anything raising this aborts the whole run.
    pass


class RegistryError(FatalError):
    pass


class StateError(FatalError):
    pass
