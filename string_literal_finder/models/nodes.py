"""フロントエンドが解決した構文木のモデル。

解析コアはこのモジュールの型とプロトコルだけに依存する。
libclang などのフロントエンドはここで定義された形に構文木を変換する。
"""

from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Protocol, Sequence

from .found_literal import CharacterLocation


class NodeKind(Enum):
    """除外ルールが区別するノード種別。"""
    COMPILATION_UNIT = "compilation_unit"
    STRING_LITERAL = "string_literal"
    IMPORT_DIRECTIVE = "import_directive"
    PART_DIRECTIVE = "part_directive"
    PART_OF_DIRECTIVE = "part_of_directive"
    ANNOTATION = "annotation"
    TYPE_DECLARATION = "type_declaration"
    FIELD_DECLARATION = "field_declaration"
    INDEX_EXPRESSION = "index_expression"
    ENUM_CONSTANT_ARGUMENTS = "enum_constant_arguments"
    INSTANCE_CREATION = "instance_creation"
    VARIABLE_DECLARATION = "variable_declaration"
    FORMAL_PARAMETER = "formal_parameter"
    METHOD_INVOCATION = "method_invocation"
    FUNCTION_DECLARATION = "function_declaration"
    ARGUMENT_LIST = "argument_list"
    OTHER = "other"


class TokenKind(Enum):
    """トークン種別。"""
    CODE = "code"
    COMMENT = "comment"


class Parameter(Protocol):
    """呼び出し先の仮引数。"""
    name: str
    is_named: bool

    def is_annotated_with(self, marker_id: str) -> bool:
        ...


class Symbol(Protocol):
    """宣言された、または参照されたシンボル。"""
    name: str

    def is_annotated_with(self, marker_id: str) -> bool:
        ...

    @property
    def parameters(self) -> Sequence[Parameter]:
        ...


class StaticType(Protocol):
    """式の静的型。"""

    def is_assignable_to(self, type_id: str) -> bool:
        ...


@dataclass(frozen=True)
class Argument:
    """呼び出しの実引数。

    Attributes:
        node: 実引数の式ノード
        name: 名前付き引数のラベル（位置引数の場合はNone）
    """
    node: "ResolvedNode"
    name: Optional[str] = None

    @property
    def is_named(self) -> bool:
        return self.name is not None


@dataclass(eq=False)
class ResolvedNode:
    """解決済み構文木のノード。

    ノードの同一性はオブジェクトの同一性で判定する。

    Attributes:
        kind: ノード種別
        offset: 開始オフセット
        end: 終了オフセット（排他的）
        parent: 親ノード
        children: 子ノード（ソース順）
        symbol: 宣言または参照しているシンボル
        static_type: 静的型
        arguments: 呼び出し系ノードの実引数
        callee: 呼び出し先（コンストラクタ、関数、メソッド）のシンボル
        name: 呼び出し先の名前
        target: 呼び出しのレシーバ、または添字式の対象
        string_value: 定数として評価できる文字列リテラルの値
        is_static: 静的メンバ宣言かどうか
        text: 診断用のソーステキスト
    """
    kind: NodeKind
    offset: int
    end: int
    parent: Optional["ResolvedNode"] = field(default=None, repr=False)
    children: List["ResolvedNode"] = field(default_factory=list, repr=False)
    symbol: Optional[Symbol] = field(default=None, repr=False)
    static_type: Optional[StaticType] = field(default=None, repr=False)
    arguments: Optional[List[Argument]] = field(default=None, repr=False)
    callee: Optional[Symbol] = field(default=None, repr=False)
    name: Optional[str] = None
    target: Optional["ResolvedNode"] = field(default=None, repr=False)
    string_value: Optional[str] = None
    is_static: bool = False
    text: str = ""

    def add_child(self, child: "ResolvedNode") -> "ResolvedNode":
        child.parent = self
        self.children.append(child)
        return child

    def __str__(self) -> str:
        return self.text or self.kind.value


@dataclass(frozen=True)
class Token:
    """ソーストークン（コメントを含む）。"""
    kind: TokenKind
    offset: int
    end: int
    text: str

    @property
    def is_comment(self) -> bool:
        return self.kind is TokenKind.COMMENT


@dataclass(frozen=True)
class AncestorEntry:
    """祖先チェーンの1要素。

    Attributes:
        node: 祖先ノード
        child: リテラルへの経路上にあるnodeの子
        grandchild: リテラルへの経路上にあるchildの子（childがリテラル自身の場合はNone）
    """
    node: ResolvedNode
    child: ResolvedNode
    grandchild: Optional[ResolvedNode] = None


def build_ancestor_chain(literal: ResolvedNode) -> List[AncestorEntry]:
    """リテラルの直接の親からルートまでの祖先チェーンを構築する。

    Args:
        literal: 対象のリテラルノード

    Returns:
        近い順の祖先チェーン（親がない場合は空）
    """
    chain: List[AncestorEntry] = []
    grandchild: Optional[ResolvedNode] = None
    child = literal
    node = literal.parent
    while node is not None:
        chain.append(AncestorEntry(node=node, child=child, grandchild=grandchild))
        grandchild, child, node = child, node, node.parent
    return chain


@dataclass
class ResolvedUnit:
    """解決済みの1ファイル分の構文木。

    Attributes:
        path: 絶対ファイルパス
        root: ルートノード
        line_starts: 各行の開始オフセット（オフセットから位置への変換表）
        tokens: オフセット順のトークン列（コメントを含む）
    """
    path: str
    root: ResolvedNode
    line_starts: List[int] = field(default_factory=lambda: [0])
    tokens: List[Token] = field(default_factory=list)
    _token_starts: Optional[List[int]] = field(default=None, init=False, repr=False)

    @staticmethod
    def compute_line_starts(source: bytes) -> List[int]:
        """ソースから各行の開始オフセットを計算する。"""
        starts = [0]
        index = source.find(b"\n")
        while index != -1:
            starts.append(index + 1)
            index = source.find(b"\n", index + 1)
        return starts

    def location(self, offset: int) -> CharacterLocation:
        """オフセットを1始まりの行・列に変換する。"""
        line = bisect_right(self.line_starts, offset)
        column = offset - self.line_starts[line - 1] + 1
        return CharacterLocation(line=line, column=column)

    def walk(self) -> Iterator[ResolvedNode]:
        """全ノードを深さ優先・ソース順に列挙する。

        文字列リテラルは不可分とし、その子孫には降りない。
        """
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            if node.kind is NodeKind.STRING_LITERAL:
                continue
            stack.extend(reversed(node.children))

    def tokens_after(self, offset: int) -> List[Token]:
        """指定オフセット以降に始まるトークンを返す。"""
        if self._token_starts is None:
            self._token_starts = [token.offset for token in self.tokens]
        return self.tokens[bisect_right(self._token_starts, offset - 1):]
