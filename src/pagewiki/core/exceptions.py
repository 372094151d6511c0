"""Exceptions raised by the page store."""


class WikiError(Exception):
    pass


class StorageError(WikiError):
    """A store operation failed.

    Carries the operation name and the key it was called with so the
    message reads like ``find_by_title 'Go': <driver error>``.
    """

    def __init__(self, operation: str, key: object, cause: object):
        self.operation = operation
        self.key = key
        self.cause = cause
        super().__init__(f"{operation} {key!r}: {cause}")


class PageNotFoundError(StorageError):
    def __init__(self, page_id: int):
        self.page_id = page_id
        super().__init__("find_by_id", page_id, "no such page")


class NoMatchingPagesError(StorageError):
    def __init__(self, fragment: str):
        self.fragment = fragment
        super().__init__("find_by_body_substring", fragment, "no matching pages")
