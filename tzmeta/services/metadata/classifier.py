"""TZIP-12 detection on top of TZIP-16 metadata.

A document looks like TZIP-12 when it claims the interface or carries a
top-level ``tokens`` field.  In that case the ``get_balance`` off-chain view,
if declared, is type-checked and every check is logged; classification
itself never fails.
"""

from __future__ import annotations

from typing import Any, Optional

from tzmeta.core.errors import MichelineError
from tzmeta.models.metadata.classified import (
    ClassificationLog,
    ClassifiedMetadata,
    InterfaceClaim,
    Tzip12Classification,
    Tzip16Classification,
)
from tzmeta.models.metadata.document import MetadataDocument, MichelsonStorageView
from tzmeta.services.michelson.micheline import Node, from_json, is_prim

TZIP_12 = "TZIP-12"
GET_BALANCE = "get_balance"


class _Logs:
    def __init__(self) -> None:
        self.entries: list[ClassificationLog] = []

    def info(self, message: str) -> None:
        self.entries.append(ClassificationLog(level="info", message=message))

    def error(self, message: str) -> None:
        self.entries.append(ClassificationLog(level="error", message=message))

    def success(self, message: str) -> None:
        self.entries.append(ClassificationLog(level="success", message=message))


def interface_claim(interfaces: list[str]) -> Optional[InterfaceClaim]:
    """Interpret the first ``TZIP-12``-prefixed interface, if any."""
    for itf in interfaces:
        if not itf.startswith(TZIP_12):
            continue
        if itf == TZIP_12:
            return InterfaceClaim(kind="just-interface")
        if itf.startswith(TZIP_12 + "-"):
            return InterfaceClaim(kind="version", value=itf[len(TZIP_12) + 1:])
        return InterfaceClaim(kind="invalid", value=itf)
    return None


def _as_type(value: Any) -> Optional[Node]:
    try:
        return from_json(value)
    except MichelineError:
        return None


def _check_parameter(impl: MichelsonStorageView, logs: _Logs) -> bool:
    if impl.parameter is None:
        logs.error(f'View "{GET_BALANCE}" has no parameter type.')
        return False
    param = _as_type(impl.parameter)
    if (
        param is not None
        and is_prim(param, "pair", 2)
        and is_prim(param.args[0], "nat")
        and is_prim(param.args[1], "address")
    ):
        logs.info(f'"{GET_BALANCE}" has the right parameter type.')
        return True
    logs.error(f'View "{GET_BALANCE}" has not the right parameter type.')
    return False


def _check_return_type(impl: MichelsonStorageView, logs: _Logs) -> bool:
    return_type = _as_type(impl.return_type)
    if return_type is not None and is_prim(return_type, "nat"):
        logs.info(f'"{GET_BALANCE}" has the right return type.')
        return True
    logs.error(f'View "{GET_BALANCE}" has not the right return type.')
    return False


def _check_get_balance(metadata: MetadataDocument, logs: _Logs) -> None:
    view = next((v for v in metadata.views if v.name == GET_BALANCE), None)
    if view is None:
        logs.info(f'No off-chain view "{GET_BALANCE}" declared.')
        return
    valid = False
    for implementation in view.implementations:
        impl = implementation.michelson_storage_view
        if impl is None:
            continue
        # Both checks run so that both get logged.
        param_ok = _check_parameter(impl, logs)
        return_ok = _check_return_type(impl, logs)
        if param_ok and return_ok:
            valid = True
            break
    if valid:
        logs.success(f'View "{GET_BALANCE}" seems valid.')
    else:
        logs.error(f'View "{GET_BALANCE}" has no valid Michelson implementation.')
        logs.error(f'View "{GET_BALANCE}" seems invalid.')


def classify(metadata: MetadataDocument) -> ClassifiedMetadata:
    logs = _Logs()
    claim = interface_claim(metadata.interfaces)
    has_tokens = "tokens" in metadata.unknown
    if has_tokens:
        logs.info('Found a "tokens" field.')
    if claim is None and not has_tokens:
        return Tzip16Classification(metadata=metadata)

    _check_get_balance(metadata, logs)
    return Tzip12Classification(
        metadata=metadata, interface_claim=claim, logs=logs.entries
    )
