"""Micheline, the tree syntax of Michelson code and data.

Nodes answer the RPC in their JSON form (``{"prim": …, "args": […]}``,
``{"int": "42"}``, ``[…]`` …).  This module converts that into small frozen
nodes, prints them back as concrete syntax for trace lines, and walks a
storage value against its type to find ``%metadata`` big-maps.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from tzmeta.core.errors import MichelineError

METADATA_ANNOTATION = "%metadata"


@dataclass(frozen=True)
class Int:
    value: int


@dataclass(frozen=True)
class String:
    value: str


@dataclass(frozen=True)
class Bytes:
    value: bytes


@dataclass(frozen=True)
class Prim:
    name: str
    args: tuple["Node", ...] = ()
    annots: tuple[str, ...] = ()


@dataclass(frozen=True)
class Seq:
    items: tuple["Node", ...] = ()


Node = Union[Int, String, Bytes, Prim, Seq]


def from_json(value: Any) -> Node:
    """Build a node from decoded Micheline JSON."""
    if isinstance(value, list):
        return Seq(tuple(from_json(item) for item in value))
    if not isinstance(value, dict):
        raise MichelineError(f"Not a Micheline node: {value!r}")
    try:
        if "int" in value:
            return Int(int(value["int"]))
        if "string" in value:
            return String(str(value["string"]))
        if "bytes" in value:
            return Bytes(bytes.fromhex(value["bytes"]))
        if "prim" in value:
            return Prim(
                name=str(value["prim"]),
                args=tuple(from_json(arg) for arg in value.get("args", [])),
                annots=tuple(value.get("annots", [])),
            )
    except (TypeError, ValueError) as exc:
        raise MichelineError(f"Invalid Micheline node {value!r}: {exc}") from exc
    raise MichelineError(f"Not a Micheline node: {value!r}")


def micheline_of_json(text: str) -> Node:
    """Parse an RPC answer; for a script, returns its ``code`` section."""
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise MichelineError(f"Invalid JSON from node: {exc}") from exc
    if isinstance(value, dict) and "code" in value:
        value = value["code"]
    try:
        return from_json(value)
    except RecursionError as exc:
        raise MichelineError("Micheline nested too deeply") from exc


def to_concrete(node: Node) -> str:
    """Concrete-syntax rendering, for logs."""
    if isinstance(node, Int):
        return str(node.value)
    if isinstance(node, String):
        return json.dumps(node.value)
    if isinstance(node, Bytes):
        return "0x" + node.value.hex()
    if isinstance(node, Seq):
        return "{ " + " ; ".join(to_concrete(item) for item in node.items) + " }"
    words = [node.name, *node.annots]
    for arg in node.args:
        text = to_concrete(arg)
        if isinstance(arg, Prim) and (arg.args or arg.annots):
            text = f"({text})"
        words.append(text)
    return " ".join(words)


def get_storage_type(code: Node) -> Node:
    """Extract the storage type from the ``code`` of a contract script."""
    if isinstance(code, Seq):
        for section in code.items:
            if isinstance(section, Prim) and section.name == "storage" and len(section.args) == 1:
                return section.args[0]
    raise MichelineError("Contract script has no storage section")


def is_prim(node: Node, name: str, arity: int = 0) -> bool:
    return isinstance(node, Prim) and node.name == name and len(node.args) == arity


def _right_comb(args: tuple[Node, ...], name: str) -> tuple[Node, Node]:
    if len(args) == 2:
        return args[0], args[1]
    return args[0], Prim(name, args[1:])


def _is_metadata_big_map(type_node: Node) -> bool:
    return (
        isinstance(type_node, Prim)
        and type_node.name == "big_map"
        and METADATA_ANNOTATION in type_node.annots
        and len(type_node.args) == 2
        and is_prim(type_node.args[0], "string")
        and is_prim(type_node.args[1], "bytes")
    )


def find_metadata_big_maps(storage_node: Node, type_node: Node) -> list[int]:
    """Ids of every ``big_map %metadata string bytes`` in the storage.

    Walks the storage value alongside its type, through pairs (binary,
    n-ary and sequence-encoded combs), options and ``or`` branches.
    """
    if isinstance(storage_node, Int):
        return [storage_node.value] if _is_metadata_big_map(type_node) else []
    if not isinstance(type_node, Prim):
        return []

    if type_node.name == "pair" and len(type_node.args) >= 2:
        left_type, right_type = _right_comb(type_node.args, "pair")
        if isinstance(storage_node, Prim) and storage_node.name == "Pair" and len(storage_node.args) >= 2:
            left, right = _right_comb(storage_node.args, "Pair")
        elif isinstance(storage_node, Seq) and len(storage_node.items) >= 2:
            left, right = _right_comb(storage_node.items, "Pair")
        else:
            return []
        return find_metadata_big_maps(left, left_type) + find_metadata_big_maps(right, right_type)

    if type_node.name == "option" and len(type_node.args) == 1:
        if isinstance(storage_node, Prim) and storage_node.name == "Some" and len(storage_node.args) == 1:
            return find_metadata_big_maps(storage_node.args[0], type_node.args[0])
        return []

    if type_node.name == "or" and len(type_node.args) == 2:
        if isinstance(storage_node, Prim) and len(storage_node.args) == 1:
            if storage_node.name == "Left":
                return find_metadata_big_maps(storage_node.args[0], type_node.args[0])
            if storage_node.name == "Right":
                return find_metadata_big_maps(storage_node.args[0], type_node.args[1])
        return []

    return []
