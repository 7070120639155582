"""ロギング設定モジュール。"""

import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(verbose: bool = False, silent: bool = False, debug: bool = False) -> str:
    """コマンドラインと設定の指定からログレベル名を決める。

    silentが最優先。verboseまたは設定のdebugでDEBUGになる。
    """
    if silent:
        return "ERROR"
    if verbose or debug:
        return "DEBUG"
    return "INFO"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """ロギング設定をセットアップする。

    コンソール出力は標準エラーに送る。標準出力はレポート専用。

    Args:
        level: ログレベル（DEBUG, INFO, WARNING, ERROR, CRITICAL）
        log_file: ログファイルへのパス（省略可）
        format_string: カスタムフォーマット文字列（省略可）

    Returns:
        ルートロガー
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    return root_logger


class ProgressLogger:
    """ファイル単位の進捗ログ出力用のヘルパークラス。"""

    def __init__(
        self,
        total: int,
        logger: Optional[logging.Logger] = None,
        log_interval: int = 10
    ):
        """進捗ロガーを初期化する。

        Args:
            total: ファイルの総数
            logger: 使用するロガー
            log_interval: 進捗更新の間隔
        """
        self.total = total
        self.current = 0
        self.logger = logger or logging.getLogger(__name__)
        self.log_interval = max(1, log_interval)

    def update(self, message: Optional[str] = None) -> None:
        """1ファイル分進める。

        Args:
            message: 含めるメッセージ（ファイル名など、省略可）
        """
        self.current += 1
        progress = self.current / self.total * 100 if self.total else 100.0

        if self.current % self.log_interval == 0 or self.current == self.total:
            msg = f"Progress: {self.current}/{self.total} ({progress:.1f}%)"
            if message:
                msg += f" - {message}"
            self.logger.info(msg)
