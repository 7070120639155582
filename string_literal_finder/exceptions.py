"""文字列リテラル検出ツールの例外定義。"""


class StringLiteralFinderError(Exception):
    """本ツールの例外の基底クラス。"""
    pass


class ConfigError(StringLiteralFinderError):
    """設定ドキュメントが不正な場合のエラー。解析開始前に中断する。"""
    pass


class FrontEndUnavailableError(StringLiteralFinderError):
    """フロントエンド（libclang）が利用できない場合のエラー。"""
    pass


class ResolutionError(StringLiteralFinderError):
    """ファイルの解決に失敗した場合のエラー。該当ファイルのみスキップする。"""

    def __init__(self, file_path: str, message: str):
        super().__init__(f"Failed to resolve {file_path}: {message}")
        self.file_path = file_path


class RuleEvaluationError(StringLiteralFinderError):
    """祖先ノードに対する除外ルールの評価に失敗した場合のエラー。"""
    pass


class ArgumentResolutionError(StringLiteralFinderError):
    """引数を仮引数に対応付けられなかった場合のエラー。"""
    pass
