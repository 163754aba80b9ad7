"""
Built-in detectors
"""

from cosmwasm_guard.detector import Detector

from .arithmetic_overflow import ArithmeticOverflow
from .incorrect_permission_hierarchy import IncorrectPermissionHierarchy
from .missing_access_control import MissingAccessControl
from .missing_addr_validate import MissingAddrValidate
from .missing_error_propagation import MissingErrorPropagation
from .nondeterministic_iteration import NondeterministicIteration
from .storage_key_collision import StorageKeyCollision
from .submessage_reply import SubmessageReplyUnvalidated
from .unbounded_iteration import UnboundedIteration
from .unsafe_unwrap import UnsafeUnwrap


def all_detectors() -> list[Detector]:
    """Fresh instances of every built-in detector, in reporting order"""
    return [
        MissingAddrValidate(),
        MissingAccessControl(),
        UnboundedIteration(),
        StorageKeyCollision(),
        UnsafeUnwrap(),
        ArithmeticOverflow(),
        MissingErrorPropagation(),
        SubmessageReplyUnvalidated(),
        NondeterministicIteration(),
        IncorrectPermissionHierarchy(),
    ]


__all__ = [
    "ArithmeticOverflow",
    "IncorrectPermissionHierarchy",
    "MissingAccessControl",
    "MissingAddrValidate",
    "MissingErrorPropagation",
    "NondeterministicIteration",
    "StorageKeyCollision",
    "SubmessageReplyUnvalidated",
    "UnboundedIteration",
    "UnsafeUnwrap",
    "all_detectors",
]
