"""文字列リテラルの除外判定。

リテラルごとに、正規表現、祖先ノードの形、シンボルのアノテーション、
型の代入可能性、行末コメントを順に調べ、ローカライズ対象外かを判定する。
"""

from typing import Callable, Dict, List, Optional, Sequence, Tuple
import logging

from ..config import ExclusionConfig
from ..exceptions import ArgumentResolutionError, RuleEvaluationError
from ..models.nodes import (
    AncestorEntry,
    Argument,
    NodeKind,
    Parameter,
    ResolvedNode,
    ResolvedUnit,
    Symbol,
    Token,
    build_ancestor_chain,
)

logger = logging.getLogger(__name__)

_Rule = Callable[[ResolvedNode, AncestorEntry], bool]


class LiteralClassifier:
    """1ファイル分の文字列リテラルを判定する。

    構文木と設定は読み取りのみ。診断ログ以外の副作用はない。
    """

    def __init__(
        self,
        config: ExclusionConfig,
        unit: ResolvedUnit,
        diagnostics: Optional[logging.Logger] = None
    ):
        """判定器を初期化する。

        Args:
            config: 除外設定
            unit: 判定対象のリテラルを含む解決済みユニット
            diagnostics: 診断ログの出力先（省略時はモジュールのロガー）
        """
        self.config = config
        self.unit = unit
        self.logger = diagnostics or logger

        # 祖先ノードの種別ごとのルール表（該当しない種別はNone）
        self._rules: Dict[NodeKind, Optional[_Rule]] = {
            NodeKind.COMPILATION_UNIT: None,
            NodeKind.STRING_LITERAL: None,
            NodeKind.IMPORT_DIRECTIVE: self._ignore_directive,
            NodeKind.PART_DIRECTIVE: self._ignore_directive,
            NodeKind.PART_OF_DIRECTIVE: self._ignore_directive,
            NodeKind.ANNOTATION: self._ignore_annotation,
            NodeKind.TYPE_DECLARATION: self._check_type_declaration,
            NodeKind.FIELD_DECLARATION: self._check_annotated_declaration,
            NodeKind.INDEX_EXPRESSION: self._check_index_expression,
            NodeKind.ENUM_CONSTANT_ARGUMENTS: self._check_enum_constant,
            NodeKind.INSTANCE_CREATION: self._check_instance_creation,
            NodeKind.VARIABLE_DECLARATION: self._check_annotated_declaration,
            NodeKind.FORMAL_PARAMETER: self._check_annotated_declaration,
            NodeKind.METHOD_INVOCATION: self._check_method_invocation,
            NodeKind.FUNCTION_DECLARATION: self._check_function_declaration,
            NodeKind.ARGUMENT_LIST: None,
            NodeKind.OTHER: None,
        }

    def classify(
        self,
        literal: ResolvedNode,
        chain: Optional[Sequence[AncestorEntry]] = None
    ) -> bool:
        """リテラルを無視すべきかを判定する。

        Args:
            literal: 文字列リテラルノード
            chain: 事前に構築した祖先チェーン（省略時は構築する）

        Returns:
            無視する場合True、報告対象の場合False
        """
        if self._matches_regex(literal):
            self._log_decision(literal, "matches ignore regex")
            return True

        if chain is None:
            chain = build_ancestor_chain(literal)

        for entry in chain:
            rule = self._rules[entry.node.kind]
            if rule is None:
                continue
            try:
                if rule(literal, entry):
                    self._log_decision(literal, f"excluded by {entry.node.kind.value}")
                    return True
            except RuleEvaluationError as e:
                self.logger.warning(
                    f"Unable to evaluate {entry.node.kind.value} rule for "
                    f"{self._describe(literal)}: {e}"
                )
            except Exception as e:
                self.logger.error(
                    f"Error while analysing node {self._describe(literal)}: {e}",
                    exc_info=True
                )

        if self._has_trailing_marker_comment(literal):
            self._log_decision(literal, "trailing marker comment")
            return True

        return False

    def _matches_regex(self, literal: ResolvedNode) -> bool:
        value = literal.string_value
        if value is None:
            return False
        return any(
            regex.search(value) for regex in self.config.ignore_string_literal_regexes
        )

    # ------------------------------------------------------------------
    # 祖先ノードごとのルール
    # ------------------------------------------------------------------

    def _ignore_directive(self, literal: ResolvedNode, entry: AncestorEntry) -> bool:
        return True

    def _ignore_annotation(self, literal: ResolvedNode, entry: AncestorEntry) -> bool:
        self.logger.debug(f"Ignoring annotation parameters {entry.node}")
        return True

    def _check_type_declaration(self, literal: ResolvedNode, entry: AncestorEntry) -> bool:
        # 静的フィールドのみ対象
        if entry.child.kind is not NodeKind.FIELD_DECLARATION or not entry.child.is_static:
            return False
        return self._is_marked(self._require_symbol(entry.node))

    def _check_index_expression(self, literal: ResolvedNode, entry: AncestorEntry) -> bool:
        target = entry.node.target
        if target is None or target.symbol is None:
            return False
        return self._is_marked(target.symbol)

    def _check_enum_constant(self, literal: ResolvedNode, entry: AncestorEntry) -> bool:
        return self._check_argument_annotation(
            entry.node.arguments or [],
            entry.node.callee,
            entry,
            literal
        )

    def _check_instance_creation(self, literal: ResolvedNode, entry: AncestorEntry) -> bool:
        node = entry.node
        if self._check_argument_annotation(node.arguments or [], node.callee, entry, literal):
            return True

        if node.static_type is None:
            raise RuleEvaluationError(f"No static type for instance creation {node}")
        return any(
            node.static_type.is_assignable_to(type_id)
            for type_id in self.config.constructor_targets
        )

    def _check_annotated_declaration(self, literal: ResolvedNode, entry: AncestorEntry) -> bool:
        symbol = entry.node.symbol
        return symbol is not None and self._is_marked(symbol)

    def _check_method_invocation(self, literal: ResolvedNode, entry: AncestorEntry) -> bool:
        node = entry.node
        if node.name is not None and node.name in self.config.debug_output_functions:
            return True

        if self._check_argument_annotation(node.arguments or [], node.callee, entry, literal):
            return True

        target = node.target
        if target is None:
            return False
        if target.static_type is None:
            self.logger.warning(f"Unable to resolve static type for {target}")
            return False
        return any(
            target.static_type.is_assignable_to(type_id)
            for type_id in self.config.method_invocation_targets
        )

    def _check_function_declaration(self, literal: ResolvedNode, entry: AncestorEntry) -> bool:
        return self._is_marked(self._require_symbol(entry.node))

    # ------------------------------------------------------------------
    # 引数のアノテーション判定
    # ------------------------------------------------------------------

    def _check_argument_annotation(
        self,
        arguments: Sequence[Argument],
        callee: Optional[Symbol],
        entry: AncestorEntry,
        literal: ResolvedNode
    ) -> bool:
        """リテラルが渡される仮引数にマーカーが付いているかを判定する。

        経路上の子（または孫）が実引数そのものでない場合、
        例えばリテラルがレシーバ側の部分式である場合は判定しない。

        Args:
            arguments: 呼び出しの実引数
            callee: 呼び出し先のシンボル（未解決の場合はNone）
            entry: 呼び出しノードの祖先チェーン要素
            literal: 対象リテラル（ログ用）

        Returns:
            マーカー付きの仮引数に渡される場合True
        """
        slot = self._find_argument_slot(arguments, entry)
        if slot is None:
            return False
        position, argument = slot

        try:
            parameter = self._resolve_parameter(callee, position, argument)
        except ArgumentResolutionError as e:
            self.logger.warning(f"{e} ({self._describe(literal)})")
            return False

        if parameter is None:
            return False
        return parameter.is_annotated_with(self.config.marker_annotation)

    @staticmethod
    def _find_argument_slot(
        arguments: Sequence[Argument],
        entry: AncestorEntry
    ) -> Optional[Tuple[int, Argument]]:
        """経路上のノードに対応する実引数と、位置引数としての順番を返す。"""
        candidates = [entry.child]
        if entry.grandchild is not None:
            candidates.append(entry.grandchild)

        position = 0
        for argument in arguments:
            if any(argument.node is candidate for candidate in candidates):
                return position, argument
            if not argument.is_named:
                position += 1
        return None

    @staticmethod
    def _resolve_parameter(
        callee: Optional[Symbol],
        position: int,
        argument: Argument
    ) -> Optional[Parameter]:
        """実引数に対応する仮引数を返す。

        Raises:
            ArgumentResolutionError: 名前付き引数に対応する仮引数がない場合
        """
        if callee is None:
            return None

        parameters = list(callee.parameters)
        if argument.is_named:
            for parameter in parameters:
                if parameter.is_named and parameter.name == argument.name:
                    return parameter
            raise ArgumentResolutionError(
                f"Unable to find parameter of name {argument.name} for {callee.name}"
            )

        positional = [p for p in parameters if not p.is_named]
        if position < len(positional):
            return positional[position]
        # 可変長引数
        return None

    # ------------------------------------------------------------------
    # 行末コメント
    # ------------------------------------------------------------------

    def _has_trailing_marker_comment(self, literal: ResolvedNode) -> bool:
        """リテラルと同じ行の行末コメントにマーカーがあるかを判定する。

        同じ行のトークンを読み飛ばし、次の行の最初のトークンの直前にある
        コメントのうち最初のものが、リテラルの行から始まっているかを調べる。
        """
        line = self.unit.location(literal.end).line
        pending: List[Token] = []
        for token in self.unit.tokens_after(literal.end):
            if token.is_comment:
                pending.append(token)
                continue
            if self.unit.location(token.offset).line != line:
                break
            pending = []

        if not pending:
            return False
        comment = pending[0]
        return (
            self.unit.location(comment.offset).line == line
            and self.config.marker_comment in comment.text
        )

    # ------------------------------------------------------------------
    # ヘルパー
    # ------------------------------------------------------------------

    def _is_marked(self, symbol: Symbol) -> bool:
        return symbol.is_annotated_with(self.config.marker_annotation)

    @staticmethod
    def _require_symbol(node: ResolvedNode) -> Symbol:
        if node.symbol is None:
            raise RuleEvaluationError(f"No resolved symbol for {node.kind.value} {node}")
        return node.symbol

    def _describe(self, literal: ResolvedNode) -> str:
        return f"{literal} at {self.unit.path}:{self.unit.location(literal.offset)}"

    def _log_decision(self, literal: ResolvedNode, reason: str) -> None:
        if self.config.debug:
            self.logger.debug(f"Ignoring {self._describe(literal)}: {reason}")
