"""検出された文字列リテラルのモデル。"""

from dataclasses import dataclass, field
from typing import Any, Optional
import os


@dataclass(frozen=True, order=True)
class CharacterLocation:
    """ソースコード上の位置（行・列とも1始まり）。"""
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class FoundStringLiteral:
    """ローカライズが必要と判定された文字列リテラル。

    Attributes:
        file_path: リテラルが見つかったファイルの絶対パス
        loc: リテラル開始位置
        loc_end: リテラル終了位置（列は排他的）
        string_value: リテラルの値（定数として評価できない場合はNone）
        node: 元の構文木ノード（参照のみ、所有しない）
    """
    file_path: str
    loc: CharacterLocation
    loc_end: CharacterLocation
    string_value: Optional[str]
    node: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if self.loc_end < self.loc:
            raise ValueError(
                f"End location {self.loc_end} precedes start location {self.loc}"
            )
        object.__setattr__(self, "file_path", os.path.abspath(self.file_path))

    @property
    def char_offset(self) -> int:
        return self.node.offset

    @property
    def char_end(self) -> int:
        return self.node.end

    @property
    def char_length(self) -> int:
        return self.char_end - self.char_offset

    def relative_path(self, start: Optional[str] = None) -> str:
        """ファイルパスを返す（startを指定した場合はstartからの相対パス）。"""
        if start is None:
            return self.file_path
        return os.path.relpath(self.file_path, start)

    def __str__(self) -> str:
        return f"{self.file_path}:{self.loc} '{self.string_value}'"
