"""解決済みユニットから報告対象の文字列リテラルを収集する。"""

from typing import List, Optional
import logging

from ..config import ExclusionConfig
from ..models.found_literal import FoundStringLiteral
from ..models.nodes import NodeKind, ResolvedUnit
from .literal_classifier import LiteralClassifier

logger = logging.getLogger(__name__)


class LiteralCollector:
    """ユニット内の全文字列リテラルを判定し、報告対象を収集する。"""

    def __init__(
        self,
        config: ExclusionConfig,
        diagnostics: Optional[logging.Logger] = None
    ):
        """収集器を初期化する。

        Args:
            config: 除外設定
            diagnostics: 診断ログの出力先（省略時はモジュールのロガー）
        """
        self.config = config
        self.logger = diagnostics or logger

    def collect(self, unit: ResolvedUnit) -> List[FoundStringLiteral]:
        """ユニットを走査し、無視されなかったリテラルをソース順に返す。

        Args:
            unit: 解決済みユニット

        Returns:
            FoundStringLiteralのリスト
        """
        classifier = LiteralClassifier(self.config, unit, self.logger)
        found: List[FoundStringLiteral] = []

        for node in unit.walk():
            if node.kind is not NodeKind.STRING_LITERAL:
                continue
            if classifier.classify(node):
                continue

            loc = unit.location(node.offset)
            loc_end = unit.location(node.end)
            self.logger.debug(
                f"Found string literal ({loc}) {node}"
                f" - parent: {node.parent.kind.value if node.parent else None}"
            )
            found.append(FoundStringLiteral(
                file_path=unit.path,
                loc=loc,
                loc_end=loc_end,
                string_value=node.string_value,
                node=node,
            ))

        return found
