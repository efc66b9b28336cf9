from .dispatcher import CrudDispatcher
from .results import CountResult, DeleteResult, FindResult, InsertResult, scrub_acl_values

__all__ = [
    "CountResult",
    "CrudDispatcher",
    "DeleteResult",
    "FindResult",
    "InsertResult",
    "scrub_acl_values",
]
