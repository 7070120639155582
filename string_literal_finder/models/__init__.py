"""Data models for string literal detection."""

from .found_literal import CharacterLocation, FoundStringLiteral
from .nodes import (
    AncestorEntry,
    Argument,
    NodeKind,
    Parameter,
    ResolvedNode,
    ResolvedUnit,
    StaticType,
    Symbol,
    Token,
    TokenKind,
    build_ancestor_chain,
)

__all__ = [
    "CharacterLocation",
    "FoundStringLiteral",
    "AncestorEntry",
    "Argument",
    "NodeKind",
    "Parameter",
    "ResolvedNode",
    "ResolvedUnit",
    "StaticType",
    "Symbol",
    "Token",
    "TokenKind",
    "build_ancestor_chain",
]
