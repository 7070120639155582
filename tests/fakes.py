"""テスト用の合成構文木とフェイクのフロントエンド。"""

import re
from typing import Iterable, List, Optional

from string_literal_finder.exceptions import ResolutionError
from string_literal_finder.models.nodes import (
    NodeKind,
    ResolvedNode,
    ResolvedUnit,
    Token,
    TokenKind,
)

_TOKEN = re.compile(r'//[^\n]*|/\*.*?\*/|"(?:[^"\\\n]|\\.)*"|\w+|\S', re.DOTALL)


class FakeParameter:
    def __init__(self, name: str, annotations: Iterable[str] = (), is_named: bool = False):
        self.name = name
        self.annotations = set(annotations)
        self.is_named = is_named

    def is_annotated_with(self, marker_id: str) -> bool:
        return marker_id in self.annotations


class FakeSymbol:
    def __init__(
        self,
        name: str = "symbol",
        annotations: Iterable[str] = (),
        parameters: Iterable[FakeParameter] = ()
    ):
        self.name = name
        self.annotations = set(annotations)
        self.parameters = list(parameters)

    def is_annotated_with(self, marker_id: str) -> bool:
        return marker_id in self.annotations


class BrokenSymbol(FakeSymbol):
    def is_annotated_with(self, marker_id: str) -> bool:
        raise RuntimeError("symbol table is corrupted")


class FakeType:
    def __init__(self, *type_ids: str):
        self.type_ids = set(type_ids)

    def is_assignable_to(self, type_id: str) -> bool:
        return type_id in self.type_ids


def marked(name: str = "symbol", parameters: Iterable[FakeParameter] = ()) -> FakeSymbol:
    return FakeSymbol(name, annotations=["non_nls"], parameters=parameters)


def node(kind: NodeKind, *children: ResolvedNode, **attrs) -> ResolvedNode:
    """子ノードを持つノードを作成する。"""
    offset = attrs.pop("offset", 0)
    end = attrs.pop("end", offset)
    result = ResolvedNode(kind=kind, offset=offset, end=end, **attrs)
    for child in children:
        result.add_child(child)
    return result


def literal(value: str, offset: int = 0) -> ResolvedNode:
    text = f'"{value}"'
    return ResolvedNode(
        kind=NodeKind.STRING_LITERAL,
        offset=offset,
        end=offset + len(text),
        string_value=value,
        text=text,
    )


def literal_in(source: str, value: str, occurrence: int = 0) -> ResolvedNode:
    """ソース中のn番目の `"value"` の位置にリテラルノードを作成する。"""
    text = f'"{value}"'
    offset = -1
    for _ in range(occurrence + 1):
        offset = source.index(text, offset + 1)
    return literal(value, offset)


def tokenize(source: str) -> List[Token]:
    """テスト用の簡易トークナイザ（ASCIIのみ）。"""
    tokens = []
    for match in _TOKEN.finditer(source):
        text = match.group(0)
        kind = TokenKind.COMMENT if text.startswith(("//", "/*")) else TokenKind.CODE
        tokens.append(Token(kind=kind, offset=match.start(), end=match.end(), text=text))
    return tokens


def make_unit(
    root: ResolvedNode,
    source: str = "",
    path: str = "/project/src/main.cpp",
    tokens: Optional[List[Token]] = None
) -> ResolvedUnit:
    data = source.encode("utf-8")
    return ResolvedUnit(
        path=path,
        root=root,
        line_starts=ResolvedUnit.compute_line_starts(data),
        tokens=tokenize(source) if tokens is None else tokens,
    )


def unit_from_source(path: str, source: str) -> ResolvedUnit:
    """ソース中の全リテラルを式文として持つユニットを作成する。"""
    root = ResolvedNode(kind=NodeKind.COMPILATION_UNIT, offset=0, end=len(source))
    for token in tokenize(source):
        if token.text.startswith('"'):
            statement = root.add_child(ResolvedNode(
                kind=NodeKind.OTHER, offset=token.offset, end=token.end
            ))
            statement.add_child(literal(token.text[1:-1], token.offset))
    return make_unit(root, source, path=path)


class FakeFrontEnd:
    """ファイルを読み込み、unit_from_sourceで変換するフロントエンド。"""

    def __init__(self, failing: Iterable[str] = (), crashing: Iterable[str] = ()):
        self.failing = set(failing)
        self.crashing = set(crashing)
        self.resolved: List[str] = []

    def resolve(self, file_path: str) -> ResolvedUnit:
        self.resolved.append(file_path)
        if any(file_path.endswith(name) for name in self.failing):
            raise ResolutionError(file_path, "parse failed")
        if any(file_path.endswith(name) for name in self.crashing):
            raise ValueError("Unknown cursor kind 604")
        with open(file_path, "r", encoding="utf-8") as f:
            return unit_from_source(file_path, f.read())
