"""検出結果のレポート出力（メトリクス、アノテーション、CI向け警告行）。"""

from typing import Any, Dict, List, Optional, Sequence
from pathlib import Path
import json
import logging

from ..models.found_literal import FoundStringLiteral

logger = logging.getLogger(__name__)

ANNOTATION_MESSAGE = "String literal"
ANNOTATION_LEVEL = "notice"


def build_metrics(
    literals: Sequence[FoundStringLiteral],
    files_analyzed: Sequence[str],
    files_skipped: Sequence[str]
) -> Dict[str, int]:
    """実行結果のメトリクスを作成する。

    Args:
        literals: 検出されたリテラル
        files_analyzed: 解析したファイル
        files_skipped: スキップしたファイル

    Returns:
        メトリクスの辞書
    """
    files_with_literals = {literal.file_path for literal in literals}
    return {
        "stringLiterals": len(literals),
        "stringLiteralsFiles": len(files_with_literals),
        "filesAnalyzed": len(files_analyzed),
        "filesSkipped": len(files_skipped),
        "filesWithoutLiterals": len(files_analyzed) - len(files_with_literals),
    }


def _display_path(literal: FoundStringLiteral, path_root: Optional[str]) -> str:
    return Path(literal.relative_path(path_root)).as_posix()


def build_annotations(
    literals: Sequence[FoundStringLiteral],
    path_root: Optional[str] = None
) -> List[Dict[str, Any]]:
    """リテラルごとのアノテーションを作成する。

    Args:
        literals: 検出されたリテラル
        path_root: パスをこのディレクトリからの相対パスにする（任意）

    Returns:
        アノテーションのリスト
    """
    return [
        {
            "message": ANNOTATION_MESSAGE,
            "level": ANNOTATION_LEVEL,
            "path": _display_path(literal, path_root),
            "column": {"start": literal.loc.column, "end": literal.loc_end.column},
            "line": {"start": literal.loc.line, "end": literal.loc_end.line},
        }
        for literal in literals
    ]


def format_github_warning(
    literal: FoundStringLiteral,
    path_root: Optional[str] = None
) -> str:
    """GitHub Actionsのワークフローコマンド形式の警告行を作成する。"""
    return (
        f"::warning file={_display_path(literal, path_root)},"
        f"line={literal.loc.line},endLine={literal.loc_end.line},"
        f"col={literal.loc.column},endColumn={literal.loc_end.column}"
        f"::String literal '{literal.string_value}'"
    )


def write_json(data: Any, output_file: str) -> None:
    """JSONファイルを書き込む。出力先ディレクトリがなければ作成する。"""
    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    logger.info(f"Written {output_path}")
