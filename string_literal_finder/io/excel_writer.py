"""検出結果のExcel出力モジュール。"""

from collections import Counter
from datetime import datetime
from typing import List, Optional, Sequence
from pathlib import Path
import logging
import os

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import PatternFill, Font, Alignment, Border, Side

from ..models.found_literal import FoundStringLiteral

logger = logging.getLogger(__name__)


class ExcelWriter:
    """検出されたリテラルをExcelファイルに書き込む。"""

    LITERALS_SHEET = "Literals"
    SUMMARY_SHEET = "Summary"

    LITERAL_HEADERS = ["ファイル", "行", "列", "終了行", "終了列", "値"]
    LITERAL_WIDTHS = [60, 8, 8, 8, 8, 60]

    # 検出件数のあるファイルの強調色
    HIGHLIGHT_COLOR = "FFEB9C"

    def __init__(self, output_file: str, path_root: Optional[str] = None):
        """Excelライターを初期化する。

        Args:
            output_file: 出力Excelファイルのパス
            path_root: パスをこのディレクトリからの相対パスにする（任意）
        """
        self.output_file = Path(output_file)
        self.path_root = path_root

        self.thin_border = Border(
            left=Side(style="thin"),
            right=Side(style="thin"),
            top=Side(style="thin"),
            bottom=Side(style="thin")
        )

    def write(
        self,
        literals: Sequence[FoundStringLiteral],
        files_analyzed: Sequence[str]
    ) -> None:
        """リテラル一覧シートとサマリーシートを含むブックを書き込む。

        Args:
            literals: 検出されたリテラル
            files_analyzed: 解析したファイル（検出0件のファイルもサマリーに含める）
        """
        wb = Workbook()
        ws = wb.active
        ws.title = self.LITERALS_SHEET

        self._add_headers(ws, self.LITERAL_HEADERS)
        for row_num, literal in enumerate(literals, 2):
            self._write_literal_row(ws, row_num, literal)
        for i, width in enumerate(self.LITERAL_WIDTHS, 1):
            col_letter = ws.cell(row=1, column=i).column_letter
            ws.column_dimensions[col_letter].width = width
        ws.freeze_panes = "A2"

        self._write_summary(wb.create_sheet(self.SUMMARY_SHEET), literals, files_analyzed)

        self.output_file.parent.mkdir(parents=True, exist_ok=True)
        wb.save(self.output_file)
        logger.info(f"Results written to {self.output_file}")

    def _display_path(self, file_path: str) -> str:
        if self.path_root is not None:
            file_path = os.path.relpath(file_path, self.path_root)
        return Path(file_path).as_posix()

    def _add_headers(self, ws, headers: List[str], row: int = 1) -> None:
        """ヘッダー行を追加する。

        Args:
            ws: ワークシートオブジェクト
            headers: ヘッダー名のリスト
            row: ヘッダー行の行番号
        """
        header_alignment = Alignment(horizontal="center", vertical="center")
        header_fill = PatternFill(
            start_color="4472C4",
            end_color="4472C4",
            fill_type="solid"
        )
        white_font = Font(bold=True, color="FFFFFF")

        for i, header in enumerate(headers, 1):
            cell = ws.cell(row=row, column=i)
            cell.value = header
            cell.font = white_font
            cell.alignment = header_alignment
            cell.fill = header_fill
            cell.border = self.thin_border

    def _write_literal_row(self, ws, row_num: int, literal: FoundStringLiteral) -> None:
        values = [
            self._display_path(literal.file_path),
            literal.loc.line,
            literal.loc.column,
            literal.loc_end.line,
            literal.loc_end.column,
            literal.string_value,
        ]
        if values[-1] is not None:
            # 制御文字はセルに書き込めない
            values[-1] = ILLEGAL_CHARACTERS_RE.sub("", values[-1])
        for i, value in enumerate(values, 1):
            cell = ws.cell(row=row_num, column=i)
            cell.value = value
            cell.border = self.thin_border
            if isinstance(value, int):
                cell.alignment = Alignment(horizontal="right")
            else:
                cell.alignment = Alignment(wrap_text=True, vertical="top")

    def _write_summary(
        self,
        ws,
        literals: Sequence[FoundStringLiteral],
        files_analyzed: Sequence[str]
    ) -> None:
        """ファイルごとの検出件数を含むサマリーシートを書き込む。"""
        counts = Counter(literal.file_path for literal in literals)
        files = list(dict.fromkeys(list(files_analyzed) + list(counts)))

        ws["A1"] = "文字列リテラル検出サマリー"
        ws["A1"].font = Font(bold=True, size=14)
        ws.merge_cells("A1:B1")

        ws["A2"] = f"生成日時: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        ws.merge_cells("A2:B2")

        self._add_headers(ws, ["ファイル", "件数"], row=4)

        row = 5
        for file_path in files:
            count = counts.get(file_path, 0)

            cell_file = ws.cell(row=row, column=1)
            cell_file.value = self._display_path(file_path)
            cell_file.border = self.thin_border
            if count:
                cell_file.fill = PatternFill(
                    start_color=self.HIGHLIGHT_COLOR,
                    end_color=self.HIGHLIGHT_COLOR,
                    fill_type="solid"
                )

            cell_count = ws.cell(row=row, column=2)
            cell_count.value = count
            cell_count.alignment = Alignment(horizontal="right")
            cell_count.border = self.thin_border

            row += 1

        # 合計行
        cell_total_label = ws.cell(row=row, column=1)
        cell_total_label.value = "合計"
        cell_total_label.font = Font(bold=True)
        cell_total_label.border = self.thin_border

        cell_total_count = ws.cell(row=row, column=2)
        cell_total_count.value = len(literals)
        cell_total_count.font = Font(bold=True)
        cell_total_count.alignment = Alignment(horizontal="right")
        cell_total_count.border = self.thin_border

        ws.column_dimensions["A"].width = 60
        ws.column_dimensions["B"].width = 10
