"""入出力モジュール。"""

from .compile_database import CompileDatabase
from .excel_writer import ExcelWriter
from .report_writer import (
    build_annotations,
    build_metrics,
    format_github_warning,
    write_json,
)

__all__ = [
    "CompileDatabase",
    "ExcelWriter",
    "build_annotations",
    "build_metrics",
    "format_github_warning",
    "write_json",
]
