"""libclangを使用したC/C++ソースコード解析のラッパー。"""

from typing import Callable, List, Optional
from pathlib import Path
import os
import logging
import threading

from ..exceptions import FrontEndUnavailableError, ResolutionError

logger = logging.getLogger(__name__)

# C言語としてパースする拡張子
C_SUFFIXES = {".c"}


class ClangAnalyzer:
    """libclangを使用したC/C++解析のメインクラス。

    libclangをラップしてTranslationUnitのパースを提供する。
    Indexはスレッドごとに作成する。
    """

    def __init__(
        self,
        library_path: Optional[str] = None,
        file_args: Optional[Callable[[str], List[str]]] = None
    ):
        """Clangアナライザーを初期化する。

        Args:
            library_path: libclangライブラリのパス（任意、未指定時は自動検出）
            file_args: ファイルごとの追加コンパイラ引数を返す関数（任意）
        """
        self._setup_libclang(library_path)

        import clang.cindex as ci
        self._ci = ci

        self.file_args = file_args
        self._local = threading.local()

        logger.debug("ClangAnalyzer initialized")

    def _setup_libclang(self, library_path: Optional[str] = None) -> None:
        """libclangライブラリパスを設定する。

        Args:
            library_path: libclangへの明示的なパス（任意）

        Raises:
            FrontEndUnavailableError: libclangを読み込めない場合
        """
        try:
            import clang.cindex as ci
        except ImportError as e:
            raise FrontEndUnavailableError(
                f"clang bindings are not installed: {e}. "
                "Please install libclang with 'pip install libclang'."
            ) from e

        if library_path:
            if not ci.Config.loaded:
                ci.Config.set_library_path(library_path)
            return

        # pip install libclangでインストールされたライブラリを使用
        try:
            ci.Index.create()
            logger.debug("libclang loaded successfully from pip package")
            return
        except Exception as e:
            load_error = e

        # 一般的なLLVMのインストール先を試す
        common_paths = [
            "/usr/lib/llvm/lib",
            "/usr/local/opt/llvm/lib",
            r"C:\Program Files\LLVM\bin",
            r"C:\Program Files (x86)\LLVM\bin",
            os.path.expanduser(r"~\AppData\Local\Programs\LLVM\bin"),
        ]
        library_names = ["libclang.so", "libclang.dylib", "libclang.dll"]

        for path in common_paths:
            if any((Path(path) / name).exists() for name in library_names):
                if not ci.Config.loaded:
                    ci.Config.set_library_path(path)
                logger.info(f"Using libclang from: {path}")
                return

        raise FrontEndUnavailableError(
            f"Failed to load libclang: {load_error}. "
            "Please install libclang with 'pip install libclang' or install LLVM."
        )

    @property
    def index(self):
        """現在のスレッドのIndexを取得する。"""
        index = getattr(self._local, "index", None)
        if index is None:
            index = self._ci.Index.create()
            self._local.index = index
        return index

    def _build_compiler_args(self, file_path: str) -> List[str]:
        """パース用のコンパイラ引数を構築する。

        Args:
            file_path: ソースファイルのパス

        Returns:
            コンパイラ引数のリスト
        """
        if Path(file_path).suffix.lower() in C_SUFFIXES:
            args = ["-x", "c", "-std=c11"]
        else:
            args = ["-x", "c++", "-std=c++17"]

        args.append("-Wno-pragma-once-outside-header")  # pragma警告を抑制

        # compile_commands.json の引数（後の-stdが優先される）
        if self.file_args is not None:
            args.extend(self.file_args(file_path))

        return args

    def get_translation_unit(self, file_path: str):
        """関数本体を含むファイルのTranslationUnitを取得する。

        Args:
            file_path: ソースファイルのパス

        Returns:
            clang.cindex.TranslationUnit

        Raises:
            ResolutionError: パースに失敗した場合
        """
        abs_path = os.path.abspath(file_path)
        args = self._build_compiler_args(abs_path)
        options = self._ci.TranslationUnit.PARSE_DETAILED_PROCESSING_RECORD

        try:
            tu = self.index.parse(abs_path, args=args, options=options)
        except Exception as e:
            raise ResolutionError(abs_path, str(e)) from e

        if tu is None:
            raise ResolutionError(abs_path, "returned None")

        self._log_diagnostics(tu, abs_path)
        return tu

    def _log_diagnostics(self, tu, file_path: str) -> None:
        # エラーがあっても構文木は得られるため、警告にとどめる
        for diag in tu.diagnostics:
            if diag.severity >= self._ci.Diagnostic.Error:
                logger.warning(f"Parse error in {file_path}: {diag.spelling}")

    @property
    def ci(self):
        """clang.cindexモジュールを取得する。"""
        return self._ci
