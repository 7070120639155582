"""除外設定管理モジュール。"""

from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Any, Dict, List, Optional, Tuple
import logging
import re

import pathspec
import yaml
from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr, ValidationError, field_validator

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

# 設定ドキュメント内のセクション名
CONFIG_SECTION = "string_literal_finder"

# 解析ルートで探索する設定ファイル名
CONFIG_FILE_NAMES = ("string_literal_finder.yaml", ".string_literal_finder.yaml")

# 「ローカライズ不要」を表すマーカーアノテーション
MARKER_ANNOTATION = "non_nls"

# 行末コメントのマーカー
MARKER_COMMENT = "NON-NLS"

# 引数のリテラルを無視するコンストラクタ呼び出しの型（識別子、正規表現、テキスト以外の値保持型）
DEFAULT_IGNORE_CONSTRUCTOR_CALLS: Tuple[str, ...] = (
    "std::basic_regex",
    "std::filesystem::path",
    "std::exception",
    "std::locale",
    "QUrl",
    "QRegularExpression",
    "QRegExp",
    "QFileInfo",
    "QDir",
    "QFile",
    "QSettings",
)

# メソッド呼び出しを無視するレシーバの型（ロギング）
DEFAULT_IGNORE_METHOD_INVOCATION_TARGETS: Tuple[str, ...] = (
    "spdlog::logger",
    "QMessageLogger",
)

# デバッグ出力用の関数名
DEFAULT_IGNORE_FUNCTION_CALLS: Tuple[str, ...] = (
    "OutputDebugString",
    "OutputDebugStringA",
    "OutputDebugStringW",
    "__assert_fail",
    "__assert_rtn",
    "_wassert",
)

# 生成ファイルのglob（常に除外）
DEFAULT_GENERATED_FILE_GLOBS: Tuple[str, ...] = (
    "**/*.pb.h",
    "**/*.pb.cc",
    "**/moc_*.cpp",
    "**/ui_*.h",
    "**/qrc_*.cpp",
)


class _SectionModel(BaseModel):
    """設定セクションの検証モデル。"""

    model_config = ConfigDict(extra="ignore")

    exclude_globs: List[StrictStr] = []
    ignore_constructor_calls: List[StrictStr] = []
    ignore_method_invocation_targets: List[StrictStr] = []
    ignore_string_literal_regexes: List[StrictStr] = []
    ignore_function_calls: List[StrictStr] = []
    debug: StrictBool = False

    @field_validator(
        "exclude_globs",
        "ignore_constructor_calls",
        "ignore_method_invocation_targets",
        "ignore_string_literal_regexes",
        "ignore_function_calls",
        mode="before",
    )
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("debug", mode="before")
    @classmethod
    def _none_as_false(cls, value: Any) -> Any:
        return False if value is None else value


def _merge(defaults: Tuple[str, ...], values: Tuple[str, ...]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(defaults + values))


@dataclass(frozen=True)
class ExclusionConfig:
    """文字列リテラルの除外設定。

    構築後は変更しない。1回の解析の全分類処理で共有される。
    組み込みのデフォルトはユーザー設定の前に結合される。
    """

    exclude_globs: Tuple[str, ...] = ()
    ignore_constructor_calls: Tuple[str, ...] = ()
    ignore_method_invocation_targets: Tuple[str, ...] = ()
    ignore_string_literal_regexes: Tuple[re.Pattern, ...] = ()
    ignore_function_calls: Tuple[str, ...] = ()
    debug: bool = False
    marker_annotation: str = MARKER_ANNOTATION
    marker_comment: str = MARKER_COMMENT

    _exclude_spec: pathspec.GitIgnoreSpec = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        patterns = list(DEFAULT_GENERATED_FILE_GLOBS) + list(self.exclude_globs)
        object.__setattr__(
            self,
            "_exclude_spec",
            pathspec.GitIgnoreSpec.from_lines(patterns)
        )

    @classmethod
    def load_from_yaml(cls, yaml_source: str) -> "ExclusionConfig":
        """YAML文字列から設定を読み込む。

        Args:
            yaml_source: 設定ドキュメント

        Returns:
            ExclusionConfigインスタンス

        Raises:
            ConfigError: ドキュメントが不正な場合
        """
        try:
            data = yaml.safe_load(yaml_source)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML document: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExclusionConfig":
        """設定ドキュメント（辞書）から設定を作成する。

        Args:
            data: トップレベルの設定辞書（Noneは空扱い）

        Returns:
            ExclusionConfigインスタンス

        Raises:
            ConfigError: 値が期待する形に変換できない場合
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"Configuration document must be a mapping, got {type(data).__name__}"
            )

        section = data.get(CONFIG_SECTION)
        if section is None:
            section = {}
        if not isinstance(section, dict):
            raise ConfigError(
                f"'{CONFIG_SECTION}' must be a mapping, got {type(section).__name__}"
            )

        try:
            model = _SectionModel.model_validate(section)
        except ValidationError as e:
            raise ConfigError(f"Invalid '{CONFIG_SECTION}' section: {e}") from e

        regexes = []
        for source in model.ignore_string_literal_regexes:
            try:
                regexes.append(re.compile(source))
            except re.error as e:
                raise ConfigError(f"Invalid regular expression {source!r}: {e}") from e

        return cls(
            exclude_globs=tuple(model.exclude_globs),
            ignore_constructor_calls=tuple(model.ignore_constructor_calls),
            ignore_method_invocation_targets=tuple(model.ignore_method_invocation_targets),
            ignore_string_literal_regexes=tuple(regexes),
            ignore_function_calls=tuple(model.ignore_function_calls),
            debug=model.debug,
        )

    @classmethod
    def from_file(cls, file_path: str) -> "ExclusionConfig":
        """YAMLファイルから設定を読み込む。

        Args:
            file_path: 設定ファイルのパス

        Returns:
            ExclusionConfigインスタンス
        """
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                source = f.read()
        except OSError as e:
            raise ConfigError(f"Unable to read configuration {file_path}: {e}") from e

        config = cls.load_from_yaml(source)
        logger.info(f"Configuration loaded from {file_path}")
        return config

    @classmethod
    def from_project(cls, project_root: str) -> "ExclusionConfig":
        """解析ルートの設定ファイルを探して読み込む。

        設定ファイルがなければデフォルト設定を返す。
        """
        for name in CONFIG_FILE_NAMES:
            path = Path(project_root) / name
            if path.is_file():
                return cls.from_file(str(path))
        logger.debug(f"No configuration file found in {project_root}, using defaults")
        return cls()

    @property
    def constructor_targets(self) -> Tuple[str, ...]:
        return _merge(DEFAULT_IGNORE_CONSTRUCTOR_CALLS, self.ignore_constructor_calls)

    @property
    def method_invocation_targets(self) -> Tuple[str, ...]:
        return _merge(
            DEFAULT_IGNORE_METHOD_INVOCATION_TARGETS,
            self.ignore_method_invocation_targets
        )

    @property
    def debug_output_functions(self) -> Tuple[str, ...]:
        return _merge(DEFAULT_IGNORE_FUNCTION_CALLS, self.ignore_function_calls)

    def is_path_excluded(self, relative_path: str) -> bool:
        """相対パスが除外globまたは生成ファイルglobに一致するかを判定する。

        Args:
            relative_path: 解析ルートからの相対パス

        Returns:
            除外対象の場合True
        """
        return self._exclude_spec.match_file(PurePath(relative_path).as_posix())

