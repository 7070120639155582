"""解析ルート配下のソースファイルから文字列リテラルを検出する。"""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Protocol, Tuple
import logging
import os

from .analyzer.literal_collector import LiteralCollector
from .config import ExclusionConfig
from .exceptions import ResolutionError
from .models.found_literal import FoundStringLiteral
from .models.nodes import ResolvedUnit
from .utils.logger import ProgressLogger

logger = logging.getLogger(__name__)

# 解析対象とするC/C++ソースの拡張子
SOURCE_SUFFIXES = (
    ".c", ".cc", ".cpp", ".cxx", ".c++",
    ".h", ".hh", ".hpp", ".hxx", ".inl", ".ipp",
)


class FrontEnd(Protocol):
    """ファイルを解決済みユニットに変換するフロントエンド。"""

    def resolve(self, file_path: str) -> ResolvedUnit:
        ...


def create_clang_front_end(base_path: str, library_path: Optional[str] = None) -> FrontEnd:
    """compile_commands.json の引数を使うlibclangフロントエンドを作成する。

    Raises:
        FrontEndUnavailableError: libclangを読み込めない場合
    """
    from .analyzer.clang_analyzer import ClangAnalyzer
    from .analyzer.clang_front_end import ClangFrontEnd
    from .io.compile_database import CompileDatabase

    database = CompileDatabase.load(base_path)
    analyzer = ClangAnalyzer(library_path=library_path, file_args=database.get_args)
    return ClangFrontEnd(analyzer)


class StringLiteralFinder:
    """文字列リテラル検出の実行を管理する。

    候補ファイルごとに除外判定、解決、収集を行い、結果をまとめる。
    ファイルの解決に失敗しても実行は継続し、そのファイルはスキップ扱いとする。

    Attributes:
        base_path: 解析ルートの絶対パス
        found_string_literals: 検出されたリテラル（候補ファイル順、ファイル内はソース順）
        files_analyzed: 解析したファイルの絶対パス
        files_skipped: スキップしたファイルの絶対パス
    """

    def __init__(
        self,
        base_path: str,
        config: Optional[ExclusionConfig] = None,
        front_end: Optional[FrontEnd] = None,
        workers: int = 1,
        diagnostics: Optional[logging.Logger] = None
    ):
        """検出器を初期化する。

        Args:
            base_path: 解析ルートのディレクトリパス
            config: 除外設定（省略時はデフォルト設定）
            front_end: フロントエンド（省略時はlibclangを使用）
            workers: 並列に解析するファイル数
            diagnostics: 診断ログの出力先（省略時はモジュールのロガー）
        """
        self.base_path = os.path.abspath(base_path)
        self.config = config or ExclusionConfig()
        self.front_end = front_end
        self.workers = max(1, workers)
        self.logger = diagnostics or logger

        self.found_string_literals: List[FoundStringLiteral] = []
        self.files_analyzed: List[str] = []
        self.files_skipped: List[str] = []

    def candidate_files(self) -> List[str]:
        """解析ルート配下のC/C++ソースファイルをパス順に返す。"""
        return sorted(
            str(path) for path in Path(self.base_path).rglob("*")
            if path.is_file() and path.suffix.lower() in SOURCE_SUFFIXES
        )

    def start(self) -> List[FoundStringLiteral]:
        """解析を実行する。

        Returns:
            検出されたリテラルのリスト

        Raises:
            FrontEndUnavailableError: フロントエンドを作成できない場合
        """
        self.found_string_literals = []
        self.files_analyzed = []
        self.files_skipped = []

        targets: List[str] = []
        for file_path in self.candidate_files():
            relative_path = os.path.relpath(file_path, self.base_path)
            if self.config.is_path_excluded(relative_path):
                self.logger.debug(f"Excluded by configuration: {relative_path}")
                self.files_skipped.append(file_path)
            else:
                targets.append(file_path)

        self.logger.info(
            f"Analyzing {len(targets)} files in {self.base_path} "
            f"({len(self.files_skipped)} excluded)"
        )

        if targets and self.front_end is None:
            self.front_end = create_clang_front_end(self.base_path)

        progress = ProgressLogger(len(targets), self.logger, log_interval=10)
        for file_path, literals in self._analyze_files(targets):
            if literals is None:
                self.files_skipped.append(file_path)
            else:
                self.files_analyzed.append(file_path)
                self.found_string_literals.extend(literals)
            progress.update(os.path.relpath(file_path, self.base_path))

        self.logger.info(
            f"Found {len(self.found_string_literals)} literals in "
            f"{len(self.files_analyzed)} analyzed files"
        )
        return self.found_string_literals

    def _analyze_files(self, targets: List[str]):
        if self.workers == 1 or len(targets) <= 1:
            for file_path in targets:
                yield self._analyze_single_file(file_path)
            return

        # 各タスクは自身の結果を返し、呼び出し側で候補順にまとめる
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            yield from executor.map(self._analyze_single_file, targets)

    def _analyze_single_file(
        self,
        file_path: str
    ) -> Tuple[str, Optional[List[FoundStringLiteral]]]:
        """1ファイルを解析する。

        Returns:
            ファイルパスと検出結果の組（スキップした場合はNone）
        """
        try:
            unit = self.front_end.resolve(file_path)
        except ResolutionError as e:
            self.logger.warning(f"Skipping file: {e}")
            return file_path, None
        except Exception as e:
            self.logger.error(f"Error while resolving {file_path}: {e}", exc_info=True)
            return file_path, None

        try:
            literals = LiteralCollector(self.config, self.logger).collect(unit)
        except Exception as e:
            self.logger.error(f"Error while analysing {file_path}: {e}", exc_info=True)
            return file_path, None

        self.logger.debug(f"{len(literals)} literals in {file_path}")
        return file_path, literals

    @property
    def files_with_literals(self) -> List[str]:
        seen = dict.fromkeys(literal.file_path for literal in self.found_string_literals)
        return list(seen)
