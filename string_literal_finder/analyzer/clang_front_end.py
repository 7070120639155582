"""libclangのTranslationUnitを解決済みユニットに変換する。"""

from typing import Dict, List, Optional, Set
import os
import re
import logging

from ..exceptions import ResolutionError
from ..models.nodes import (
    Argument,
    NodeKind,
    ResolvedNode,
    ResolvedUnit,
    Token,
    TokenKind,
)
from .clang_analyzer import ClangAnalyzer

logger = logging.getLogger(__name__)

# 文字列リテラルの構成要素（接頭辞、通常リテラル、rawリテラル）
_LITERAL_PIECE = re.compile(
    r'(?:u8|u|U|L)?'
    r'(?:R"(?P<delim>[^()\\\s]{0,16})\((?P<raw>.*?)\)(?P=delim)"'
    r'|"(?P<body>(?:[^"\\\n]|\\.)*)")',
    re.DOTALL
)

# 連結されたリテラル間の空白とコメント
_LITERAL_GAP = re.compile(r'(?:\s+|//[^\n]*|/\*.*?\*/)*', re.DOTALL)

_ESCAPE = re.compile(
    r'\\(?:([0-7]{1,3})|x([0-9A-Fa-f]+)|u([0-9A-Fa-f]{4})|U([0-9A-Fa-f]{8})|(.))',
    re.DOTALL
)

_SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "a": "\a", "b": "\b",
    "f": "\f", "v": "\v", "e": "\x1b", "\n": "",
}

_GAP_COMMENT = re.compile(rb'//[^\n]*|/\*.*?\*/', re.DOTALL)


def _unescape(body: str) -> str:
    def replace(match) -> str:
        octal, hexadecimal, short_unicode, long_unicode, other = match.groups()
        try:
            if octal:
                return chr(int(octal, 8))
            if hexadecimal:
                return chr(int(hexadecimal, 16))
            if short_unicode or long_unicode:
                return chr(int(short_unicode or long_unicode, 16))
        except (ValueError, OverflowError):
            return match.group(0)
        return _SIMPLE_ESCAPES.get(other, other)

    return _ESCAPE.sub(replace, body)


def decode_string_literal(text: str) -> Optional[str]:
    """C/C++の文字列リテラルのソーステキストから値を求める。

    隣接するリテラルは連結する。リテラルの綴りでない場合（マクロ展開など）はNone。

    Args:
        text: リテラルのソーステキスト

    Returns:
        リテラルの値、評価できない場合はNone
    """
    pieces: List[str] = []
    position = _LITERAL_GAP.match(text).end()
    while position < len(text):
        match = _LITERAL_PIECE.match(text, position)
        if match is None:
            return None
        if match.group("raw") is not None:
            pieces.append(match.group("raw"))
        else:
            pieces.append(_unescape(match.group("body")))
        position = _LITERAL_GAP.match(text, match.end()).end()

    if not pieces:
        return None
    return "".join(pieces)


class ClangSymbol:
    """libclangのカーソルをシンボルとして扱う。"""

    is_named = False

    def __init__(self, cursor, ci):
        self._cursor = cursor
        self._ci = ci
        self.name = cursor.spelling

    def _declarations(self) -> list:
        declarations = [self._cursor]
        for other in (self._cursor.canonical, self._cursor.get_definition()):
            if other is not None and all(other != d for d in declarations):
                declarations.append(other)
        return declarations

    def is_annotated_with(self, marker_id: str) -> bool:
        """宣言（正規宣言、定義を含む）にannotate属性があるかを判定する。"""
        for declaration in self._declarations():
            for child in declaration.get_children():
                if (child.kind == self._ci.CursorKind.ANNOTATE_ATTR
                        and child.spelling == marker_id):
                    return True
        return False

    @property
    def parameters(self) -> List["ClangSymbol"]:
        arguments = list(self._cursor.get_arguments())
        if not arguments:
            # 関数テンプレートなど
            arguments = [
                child for child in self._cursor.get_children()
                if child.kind == self._ci.CursorKind.PARM_DECL
            ]
        return [ClangSymbol(argument, self._ci) for argument in arguments]

    def __str__(self) -> str:
        return self.name


def qualified_name(cursor, ci) -> str:
    """宣言の完全修飾名を返す。

    `__` で始まる名前空間（std::__1、std::__cxx11 などのインライン名前空間）は除く。
    """
    parts: List[str] = []
    current = cursor
    while current is not None and current.kind != ci.CursorKind.TRANSLATION_UNIT:
        name = current.spelling.split("<", 1)[0]
        is_hidden_namespace = (
            current.kind == ci.CursorKind.NAMESPACE and name.startswith("__")
        )
        if name and not is_hidden_namespace:
            parts.append(name)
        current = current.semantic_parent
    return "::".join(reversed(parts))


class ClangType:
    """libclangの型を静的型として扱う。"""

    def __init__(self, clang_type, ci):
        self._type = clang_type
        self._ci = ci

    def _declaration(self):
        TypeKind = self._ci.TypeKind
        current = self._type.get_canonical()
        while current.kind in (TypeKind.POINTER, TypeKind.LVALUEREFERENCE, TypeKind.RVALUEREFERENCE):
            current = current.get_pointee().get_canonical()
        declaration = current.get_declaration()
        if declaration is None or declaration.kind.is_invalid():
            return None
        return declaration

    def is_assignable_to(self, type_id: str) -> bool:
        """型またはその基底クラスの完全修飾名がtype_idと一致するかを判定する。"""
        declaration = self._declaration()
        if declaration is None:
            return False
        return self._derives_from(declaration, type_id, set())

    def _derives_from(self, declaration, type_id: str, visited: Set[str]) -> bool:
        name = qualified_name(declaration, self._ci)
        if name == type_id:
            return True
        if name in visited:
            return False
        visited.add(name)

        definition = declaration.get_definition() or declaration
        for child in definition.get_children():
            if child.kind != self._ci.CursorKind.CXX_BASE_SPECIFIER:
                continue
            base = child.type.get_canonical().get_declaration()
            if base is None or base.kind.is_invalid():
                continue
            if self._derives_from(base, type_id, visited):
                return True
        return False

    def __str__(self) -> str:
        return self._type.spelling


class ClangUnitBuilder:
    """TranslationUnitから解析対象ファイルの構文木を構築する。"""

    def __init__(self, ci):
        self._ci = ci
        CursorKind = ci.CursorKind

        self.record_kinds = {
            CursorKind.CLASS_DECL,
            CursorKind.STRUCT_DECL,
            CursorKind.UNION_DECL,
            CursorKind.CLASS_TEMPLATE,
            CursorKind.CLASS_TEMPLATE_PARTIAL_SPECIALIZATION,
        }
        self.function_kinds = {
            CursorKind.FUNCTION_DECL,
            CursorKind.CXX_METHOD,
            CursorKind.CONSTRUCTOR,
            CursorKind.DESTRUCTOR,
            CursorKind.FUNCTION_TEMPLATE,
            CursorKind.CONVERSION_FUNCTION,
        }
        self.simple_kinds = {
            CursorKind.TRANSLATION_UNIT: NodeKind.COMPILATION_UNIT,
            CursorKind.STRING_LITERAL: NodeKind.STRING_LITERAL,
            CursorKind.INCLUSION_DIRECTIVE: NodeKind.IMPORT_DIRECTIVE,
            CursorKind.ANNOTATE_ATTR: NodeKind.ANNOTATION,
            CursorKind.FIELD_DECL: NodeKind.FIELD_DECLARATION,
            CursorKind.PARM_DECL: NodeKind.FORMAL_PARAMETER,
            CursorKind.ARRAY_SUBSCRIPT_EXPR: NodeKind.INDEX_EXPRESSION,
        }
        self.reference_kinds = {
            CursorKind.DECL_REF_EXPR,
            CursorKind.MEMBER_REF_EXPR,
        }

    def build(self, tu, file_path: str, source: Optional[bytes] = None) -> ResolvedUnit:
        """解決済みユニットを構築する。

        Args:
            tu: clang.cindex.TranslationUnit
            file_path: 解析対象ファイルのパス
            source: ファイル内容（省略時はファイルから読み込む）

        Returns:
            ResolvedUnit
        """
        path = os.path.abspath(file_path)
        if source is None:
            with open(path, "rb") as f:
                source = f.read()

        root = ResolvedNode(
            kind=NodeKind.COMPILATION_UNIT,
            offset=0,
            end=len(source),
            text=os.path.basename(path)
        )
        cursors: Dict[int, object] = {}
        calls: List[ResolvedNode] = []

        stack = [(child, root) for child in reversed(list(tu.cursor.get_children()))]
        while stack:
            cursor, parent = stack.pop()
            if not self._in_file(cursor, path, strict=parent is root):
                continue
            node = parent.add_child(self._make_node(cursor, source))
            cursors[id(node)] = cursor
            if node.kind in (
                NodeKind.INSTANCE_CREATION,
                NodeKind.METHOD_INVOCATION,
                NodeKind.INDEX_EXPRESSION,
            ):
                calls.append(node)
            if node.kind is NodeKind.STRING_LITERAL:
                continue
            stack.extend((child, node) for child in reversed(list(cursor.get_children())))

        for node in calls:
            self._link_call(node, cursors)

        tokens = self._collect_tokens(tu, path, source)
        logger.debug(f"Resolved {path}: {len(cursors)} nodes, {len(tokens)} tokens")

        return ResolvedUnit(
            path=path,
            root=root,
            line_starts=ResolvedUnit.compute_line_starts(source),
            tokens=tokens,
        )

    def _in_file(self, cursor, path: str, strict: bool = False) -> bool:
        # 他のファイル（ヘッダー、組み込みマクロ）のノードを除外
        location_file = cursor.location.file
        if location_file is None:
            return not strict
        return os.path.normpath(os.path.abspath(location_file.name)) == os.path.normpath(path)

    def _node_kind(self, cursor) -> NodeKind:
        CursorKind = self._ci.CursorKind
        kind = cursor.kind

        if kind in self.simple_kinds:
            return self.simple_kinds[kind]
        if kind in self.record_kinds:
            return NodeKind.TYPE_DECLARATION
        if kind in self.function_kinds:
            return NodeKind.FUNCTION_DECLARATION
        if kind == CursorKind.VAR_DECL:
            parent = cursor.semantic_parent
            if parent is not None and parent.kind in self.record_kinds:
                return NodeKind.FIELD_DECLARATION
            return NodeKind.VARIABLE_DECLARATION
        if kind == CursorKind.CALL_EXPR:
            if cursor.spelling == "operator[]":
                return NodeKind.INDEX_EXPRESSION
            referenced = cursor.referenced
            if referenced is not None and referenced.kind == CursorKind.CONSTRUCTOR:
                return NodeKind.INSTANCE_CREATION
            return NodeKind.METHOD_INVOCATION
        return NodeKind.OTHER

    def _make_node(self, cursor, source: bytes) -> ResolvedNode:
        CursorKind = self._ci.CursorKind
        kind = self._node_kind(cursor)
        extent = cursor.extent
        offset = extent.start.offset
        end = max(extent.end.offset, offset)

        node = ResolvedNode(kind=kind, offset=offset, end=end, text=cursor.spelling)

        if kind is NodeKind.STRING_LITERAL:
            node.text = source[offset:end].decode("utf-8", errors="replace")
            node.string_value = decode_string_literal(node.text)
        elif kind in (
            NodeKind.TYPE_DECLARATION,
            NodeKind.FIELD_DECLARATION,
            NodeKind.VARIABLE_DECLARATION,
            NodeKind.FORMAL_PARAMETER,
            NodeKind.FUNCTION_DECLARATION,
        ):
            node.symbol = ClangSymbol(cursor, self._ci)
            node.is_static = (
                cursor.kind == CursorKind.VAR_DECL and kind is NodeKind.FIELD_DECLARATION
            )
        elif cursor.kind in self.reference_kinds and cursor.referenced is not None:
            node.symbol = ClangSymbol(cursor.referenced, self._ci)

        if cursor.kind.is_expression():
            if cursor.type.kind != self._ci.TypeKind.INVALID:
                node.static_type = ClangType(cursor.type, self._ci)

        if cursor.kind == CursorKind.CALL_EXPR:
            node.name = cursor.spelling
            if cursor.referenced is not None:
                node.callee = ClangSymbol(cursor.referenced, self._ci)

        return node

    def _link_call(self, node: ResolvedNode, cursors: Dict[int, object]) -> None:
        """呼び出しノードに実引数とレシーバを設定する。"""
        CursorKind = self._ci.CursorKind
        cursor = cursors[id(node)]
        children = [(child, cursors[id(child)]) for child in node.children]

        if cursor.kind == CursorKind.ARRAY_SUBSCRIPT_EXPR:
            if node.children:
                node.target = self._unwrap(node.children[0])
            return

        argument_cursors = list(cursor.get_arguments())
        object_cursor = None
        if self._is_member_operator(cursor.referenced, len(argument_cursors)):
            # メンバ演算子の呼び出しでは第1引数がオブジェクト
            object_cursor = argument_cursors.pop(0)

        arguments: List[Argument] = []
        for argument_cursor in argument_cursors:
            child = self._find_child(children, argument_cursor)
            if child is not None:
                arguments.append(Argument(node=child))
        node.arguments = arguments

        if object_cursor is not None:
            receiver = self._find_child(children, object_cursor)
            if receiver is not None:
                node.target = self._unwrap(receiver)
            return

        if node.kind is NodeKind.INDEX_EXPRESSION:
            if arguments:
                node.target = self._unwrap(arguments[0].node)
            return

        for child, child_cursor in children:
            if child_cursor.kind == CursorKind.MEMBER_REF_EXPR:
                if child.children:
                    node.target = child.children[0]
                break

    def _is_member_operator(self, callee, argument_count: int) -> bool:
        if callee is None or callee.kind != self._ci.CursorKind.CXX_METHOD:
            return False
        if not callee.spelling.startswith("operator"):
            return False
        return argument_count == len(list(callee.get_arguments())) + 1

    @staticmethod
    def _find_child(children, argument_cursor) -> Optional[ResolvedNode]:
        for child, child_cursor in children:
            if child_cursor == argument_cursor:
                return child
        return None

    @staticmethod
    def _unwrap(node: ResolvedNode) -> ResolvedNode:
        # 暗黙の変換や括弧を取り除く
        while node.symbol is None and len(node.children) == 1:
            node = node.children[0]
        return node

    def _collect_tokens(self, tu, path: str, source: bytes) -> List[Token]:
        """ファイル全体のトークン列を作成する。

        トークン間の空白に含まれるコメントもトークンとして加える。
        """
        TokenKind_ = self._ci.TokenKind
        tokens: List[Token] = []
        previous_end = 0

        extent = tu.get_extent(path, (0, len(source)))
        for token in tu.get_tokens(extent=extent):
            start = token.extent.start.offset
            end = token.extent.end.offset
            if start < previous_end:
                continue
            tokens.extend(self._gap_comments(source, previous_end, start))
            kind = TokenKind.COMMENT if token.kind == TokenKind_.COMMENT else TokenKind.CODE
            tokens.append(Token(kind=kind, offset=start, end=end, text=token.spelling))
            previous_end = end

        tokens.extend(self._gap_comments(source, previous_end, len(source)))
        return tokens

    @staticmethod
    def _gap_comments(source: bytes, start: int, end: int) -> List[Token]:
        return [
            Token(
                kind=TokenKind.COMMENT,
                offset=start + match.start(),
                end=start + match.end(),
                text=match.group(0).decode("utf-8", errors="replace")
            )
            for match in _GAP_COMMENT.finditer(source, start, end)
        ]


class ClangFrontEnd:
    """libclangによるフロントエンド。ファイルを解決済みユニットに変換する。"""

    def __init__(self, analyzer: ClangAnalyzer):
        """フロントエンドを初期化する。

        Args:
            analyzer: ClangAnalyzerインスタンス
        """
        self.analyzer = analyzer
        self.builder = ClangUnitBuilder(analyzer.ci)

    def resolve(self, file_path: str) -> ResolvedUnit:
        """ファイルをパースして解決済みユニットを返す。

        Raises:
            ResolutionError: パースまたは変換に失敗した場合
        """
        tu = self.analyzer.get_translation_unit(file_path)
        try:
            return self.builder.build(tu, file_path)
        except OSError as e:
            raise ResolutionError(file_path, str(e)) from e
        except Exception as e:
            # 未知のカーソル種別などバインディング側の例外
            logger.debug(f"Unit build failed for {file_path}", exc_info=True)
            raise ResolutionError(file_path, f"{type(e).__name__}: {e}") from e
