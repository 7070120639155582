"""compile_commands.json からファイルごとのパース引数を取得する。"""

from typing import Dict, List, Optional, Tuple
from pathlib import Path
import json
import logging
import os
import shlex

logger = logging.getLogger(__name__)

# 値を次の引数に取るオプション
_OPTIONS_WITH_VALUE = ("-I", "-D", "-isystem", "-include", "-x")

# 値を連結して書けるオプション
_JOINED_PREFIXES = ("-I", "-D")


class CompileDatabase:
    """コンパイルデータベース。

    compile_commands.json に記録されたコンパイラ引数のうち、
    パースに影響するもの（-I、-D、-std=、-x、-isystem、-include）を保持する。

    Attributes:
        project_root: 解析ルート
        path: 読み込んだ compile_commands.json のパス（見つからない場合はNone）
    """

    def __init__(self, project_root: str):
        """コンパイルデータベースを初期化する。

        Args:
            project_root: 解析ルートのディレクトリパス
        """
        self.project_root = Path(project_root)
        self.path: Optional[Path] = None
        self._file_args: Dict[str, List[Tuple[str, ...]]] = {}
        self._shared_args: List[Tuple[str, ...]] = []

    @classmethod
    def load(cls, project_root: str) -> "CompileDatabase":
        """解析ルートの compile_commands.json を探して読み込む。

        見つからない場合や壊れている場合は空のデータベースを返す。
        """
        database = cls(project_root)
        path = database._find_compile_commands()
        if path is not None:
            logger.info(f"Using compile_commands.json: {path}")
            database._parse_compile_commands(path)
        return database

    def _find_compile_commands(self) -> Optional[Path]:
        """compile_commands.json を検索。

        一般的なビルドディレクトリを探索する。

        Returns:
            compile_commands.json のパス、見つからない場合は None
        """
        candidates = [
            self.project_root / "build" / "compile_commands.json",
            self.project_root / "cmake-build-debug" / "compile_commands.json",
            self.project_root / "cmake-build-release" / "compile_commands.json",
            self.project_root / "out" / "build" / "compile_commands.json",
            self.project_root / "compile_commands.json",
        ]
        for path in candidates:
            if path.exists():
                return path
        return None

    def _parse_compile_commands(self, path: Path) -> None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Failed to parse compile_commands.json: {e}")
            return

        if not isinstance(data, list):
            logger.error("Failed to parse compile_commands.json: expected a list of entries")
            return

        shared: Optional[List[Tuple[str, ...]]] = None
        for entry in data:
            if not isinstance(entry, dict) or not entry.get("file"):
                continue

            command = entry.get("arguments") or entry.get("command", "")
            if isinstance(command, list):
                args = [str(arg) for arg in command]
            else:
                try:
                    args = shlex.split(command)
                except ValueError as e:
                    logger.warning(f"Skipping malformed command for {entry['file']}: {e}")
                    continue

            directory = entry.get("directory") or str(path.parent)
            parse_args = self._extract_parse_args(args, directory)

            file_path = entry["file"]
            if not os.path.isabs(file_path):
                file_path = os.path.join(directory, file_path)
            self._file_args[self._key(file_path)] = parse_args

            # 全エントリに共通する引数
            if shared is None:
                shared = list(parse_args)
            else:
                shared = [arg for arg in shared if arg in parse_args]

        self.path = path
        self._shared_args = shared or []

        logger.info(
            f"Extracted from compile_commands.json: "
            f"{len(self._file_args)} files, "
            f"{len(self._shared_args)} shared args"
        )

    @staticmethod
    def _extract_parse_args(args: List[str], directory: str) -> List[Tuple[str, ...]]:
        """コンパイラ引数からパースに必要なものを抽出する。

        Args:
            args: コンパイラ引数（先頭はコンパイラ）
            directory: 相対パスの基準ディレクトリ

        Returns:
            オプションと値の組のリスト
        """
        result: List[Tuple[str, ...]] = []
        i = 1
        while i < len(args):
            arg = args[i]
            option = None
            value = None

            if arg in _OPTIONS_WITH_VALUE:
                # -I /path の形式
                if i + 1 < len(args):
                    option, value = arg, args[i + 1]
                    i += 1
            elif arg.startswith(_JOINED_PREFIXES):
                # -I/path の形式
                option, value = arg[:2], arg[2:]
            elif arg.startswith("-std="):
                result.append((arg,))

            if option is not None:
                if option in ("-I", "-isystem", "-include") and not os.path.isabs(value):
                    value = os.path.normpath(os.path.join(directory, value))
                result.append((option, value))
            i += 1

        return result

    @staticmethod
    def _key(file_path: str) -> str:
        return os.path.normcase(os.path.normpath(os.path.abspath(file_path)))

    def __len__(self) -> int:
        return len(self._file_args)

    @staticmethod
    def _flatten(pairs: List[Tuple[str, ...]]) -> List[str]:
        return [arg for pair in pairs for arg in pair]

    @property
    def shared_args(self) -> List[str]:
        return self._flatten(self._shared_args)

    def get_args(self, file_path: str) -> List[str]:
        """ファイルのパース引数を返す。

        データベースにないファイルは全エントリに共通する引数を使う。

        Args:
            file_path: ソースファイルのパス

        Returns:
            パース引数のリスト
        """
        args = self._file_args.get(self._key(file_path))
        if args is None:
            return self.shared_args
        return self._flatten(args)
