"""Row-level access control.

Entities with ACL enabled carry four columns: the owning principal, a group
code, the group's privilege bitmask and the public privilege bitmask. Every
read, write and delete query gets an ownership/group/public disjunction
appended to its conditions.
"""

from enum import IntFlag
from typing import Any, Dict, List, Optional

from ..errors import MisconfiguredAcl
from ..query.expr import BitMaskMatch, ColumnPredicate, Expr, Or, and_all, or_any
from ..query.operators import Predicate, PredicateKind
from ..query.translator import BuiltQuery
from ..schema.models import EntityDescriptor, OwnerPolicy, Principal
from ..utils.logging import get_logger

logger = get_logger(__name__)


class Privilege(IntFlag):
    READ = 1
    WRITE = 2
    DELETE = 4


ACL_OWNER = "acl_owner"
ACL_GROUP = "acl_group"
ACL_GROUP_PRIVS = "acl_group_privs"
ACL_PUBLIC_PRIVS = "acl_public_privs"
ACL_COLUMNS = (ACL_OWNER, ACL_GROUP, ACL_GROUP_PRIVS, ACL_PUBLIC_PRIVS)

NO_GROUP = "none"


def check_acl_columns(entity: EntityDescriptor) -> None:
    missing = [col for col in ACL_COLUMNS if not entity.has_column(col)]
    if missing:
        raise MisconfiguredAcl(
            f"{entity.name} does not include the required acl columns: "
            "acl_owner(string), acl_group(string), acl_group_privs(int), acl_public_privs(int). "
            f"Missing: {', '.join(missing)}"
        )


def acl_clause(principal: Optional[Principal], required: int) -> Or:
    """
    Build the ownership/group/public disjunction for ``required`` privileges.

    Clauses that cannot match anything (no principal id, no groups) are left
    out, so an anonymous caller only matches through public privileges.
    """
    principal = principal or Principal.anonymous()
    clauses: List[Expr] = []
    if not principal.is_anonymous:
        clauses.append(ColumnPredicate(ACL_OWNER, Predicate(PredicateKind.EQUALS, principal.id)))
    if principal.groups:
        clauses.append(
            and_all(
                ColumnPredicate(ACL_GROUP, Predicate(PredicateKind.IN, tuple(sorted(principal.groups)))),
                BitMaskMatch(ACL_GROUP_PRIVS, int(required)),
            )
        )
    clauses.append(BitMaskMatch(ACL_PUBLIC_PRIVS, int(required)))
    return or_any(*clauses)


def add_acl(
    entity: EntityDescriptor,
    query: BuiltQuery,
    principal: Optional[Principal],
    required: int,
) -> BuiltQuery:
    """
    Append the ACL disjunction to ``query.where`` (ANDed with existing filters).

    Raises:
        MisconfiguredAcl: If the entity lacks any of the four ACL columns
    """
    logger.debug(f"Adding acl ({Privilege(required)!r}) to {entity.name} query")
    check_acl_columns(entity)
    query.where.append(acl_clause(principal, required))
    return query


def add_acl_find(entity: EntityDescriptor, query: BuiltQuery, principal: Optional[Principal]) -> BuiltQuery:
    return add_acl(entity, query, principal, Privilege.READ)


def add_acl_update(entity: EntityDescriptor, query: BuiltQuery, principal: Optional[Principal]) -> BuiltQuery:
    return add_acl(entity, query, principal, Privilege.WRITE)


def add_acl_delete(entity: EntityDescriptor, query: BuiltQuery, principal: Optional[Principal]) -> BuiltQuery:
    return add_acl(entity, query, principal, Privilege.DELETE)


def compute_insert_defaults(entity: EntityDescriptor, principal: Optional[Principal]) -> Dict[str, Any]:
    """
    ACL column values for a new row.

    The owner is the calling principal when the entity's policy asks for it and
    a principal is present; otherwise the configured owner value (0 by default).
    """
    defaults = entity.acl_defaults
    if defaults.owner_policy == OwnerPolicy.CURRENT_PRINCIPAL and principal is not None and not principal.is_anonymous:
        owner = principal.id
    else:
        owner = defaults.owner_value if defaults.owner_value is not None else 0

    if defaults.group_name:
        group, group_privs = defaults.group_name, int(defaults.group_privileges or 0)
    else:
        group, group_privs = NO_GROUP, 0

    return {
        ACL_OWNER: owner,
        ACL_GROUP: group,
        ACL_GROUP_PRIVS: group_privs,
        ACL_PUBLIC_PRIVS: int(defaults.public_privileges or 0),
    }


def allow_insert(entity: EntityDescriptor, principal: Optional[Principal]) -> bool:
    if not entity.create_group:
        return True
    groups = principal.groups if principal is not None else frozenset()
    return entity.create_group in groups
