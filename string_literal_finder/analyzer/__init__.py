"""文字列リテラルの判定と、libclangを使用したC/C++ソースコード解析モジュール。"""

from .literal_classifier import LiteralClassifier
from .literal_collector import LiteralCollector

__all__ = [
    "LiteralClassifier",
    "LiteralCollector",
]
