"""C/C++ソースコードからローカライズされていない文字列リテラルを検出するツール。"""

__version__ = "0.1.0"
