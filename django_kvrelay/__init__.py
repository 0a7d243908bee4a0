VERSION = (1, 0, 0)
__version__ = ".".join(map(str, VERSION))


def get_connection(alias="default"):
    """Helper used for obtaining a named connection from ``settings.KVRELAY``."""
    from django_kvrelay.manager import manager

    return manager.connection(alias)
