"""CIS profile document as a tree of leaf and container attributes.

A node with a ``signature`` record is a leaf attribute; any other mapping is a
container of further attributes. The decision is taken once, when the JSON
document is parsed. Non-mapping values (``schema`` for instance) are kept as
plain scalars.
"""
from __future__ import annotations

import base64
import binascii
import copy
import json
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Iterator, Optional, Union

from .errors import SkeletonError


@dataclass
class LeafAttribute:
    """A single signable attribute: value (or values), metadata and signature."""

    data: Dict[str, Any]

    @property
    def value_key(self) -> str:
        return "values" if "values" in self.data else "value"

    @property
    def value(self) -> Any:
        return self.data.get(self.value_key)

    @value.setter
    def value(self, new_value: Any):
        self.data[self.value_key] = new_value

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.data.setdefault("metadata", {})

    @property
    def signature(self) -> Dict[str, Any]:
        return self.data["signature"]

    @property
    def publisher_name(self) -> Optional[str]:
        publisher = self.signature.get("publisher") if isinstance(self.signature, dict) else None
        return publisher.get("name") if isinstance(publisher, dict) else None

    def stamp(self, publisher: str, last_modified: Optional[str] = None, display: Optional[str] = None):
        """Claim the attribute for ``publisher`` so it gets signed."""
        if last_modified is not None:
            self.metadata["last_modified"] = last_modified
        if display is not None:
            self.metadata["display"] = display
        if not isinstance(self.data.get("signature"), dict):
            self.data["signature"] = {}
        self.signature.setdefault("publisher", {})["name"] = publisher

    def is_signable(self, publisher: str) -> bool:
        return self.publisher_name == publisher and self.value is not None


@dataclass
class ContainerAttribute:
    children: Dict[str, "Node"] = field(default_factory=dict)

    def __getitem__(self, name: str) -> "Node":
        return self.children[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.children)


Node = Union[LeafAttribute, ContainerAttribute, Any]


def _parse_node(raw: Any) -> Node:
    if not isinstance(raw, dict):
        return raw
    if "signature" in raw:
        return LeafAttribute(dict(raw))
    return ContainerAttribute({name: _parse_node(child) for name, child in raw.items()})


def _dump_node(node: Node) -> Any:
    if isinstance(node, LeafAttribute):
        return node.data
    if isinstance(node, ContainerAttribute):
        return {name: _dump_node(child) for name, child in node.children.items()}
    return node


@dataclass
class Profile:
    root: ContainerAttribute

    @classmethod
    def from_dict(cls, document: Dict[str, Any]) -> "Profile":
        if not isinstance(document, dict):
            raise SkeletonError("profile document must be a JSON object")
        return cls(_parse_node(document))

    def to_dict(self) -> Dict[str, Any]:
        return _dump_node(self.root)

    def clone(self) -> "Profile":
        return copy.deepcopy(self)

    def leaf(self, path: str) -> LeafAttribute:
        """Return the leaf at a dotted path such as ``identities.github_id_v3``."""
        node: Node = self.root
        for part in path.split("."):
            if not isinstance(node, ContainerAttribute) or part not in node.children:
                raise SkeletonError(f"null profile has no attribute '{path}'")
            node = node.children[part]
        if not isinstance(node, LeafAttribute):
            raise SkeletonError(f"null profile attribute '{path}' is not a signable attribute")
        return node

    def leaves(self) -> Iterator[LeafAttribute]:
        """Every leaf attribute, depth first, without recursion."""
        stack = [self.root]
        while stack:
            container = stack.pop()
            for child in container.children.values():
                if isinstance(child, LeafAttribute):
                    yield child
                elif isinstance(child, ContainerAttribute):
                    stack.append(child)


@lru_cache(maxsize=8)
def load_skeleton(encoded: str) -> Profile:
    """Decode the base64 null profile once; callers must clone() before writing."""
    try:
        document = json.loads(base64.b64decode(encoded, validate=True))
    except (binascii.Error, ValueError) as exc:
        raise SkeletonError(f"null profile is not base64 encoded JSON: {exc}") from exc
    return Profile.from_dict(document)
