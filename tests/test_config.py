"""ExclusionConfigのテスト。"""

from pathlib import Path
from tempfile import TemporaryDirectory
import warnings

import pytest

from string_literal_finder.config import (
    DEFAULT_IGNORE_CONSTRUCTOR_CALLS,
    DEFAULT_IGNORE_FUNCTION_CALLS,
    DEFAULT_IGNORE_METHOD_INVOCATION_TARGETS,
    ExclusionConfig,
)
from string_literal_finder.exceptions import ConfigError


class TestPathExclusion:
    """ファイル除外globのテスト。"""

    def test_exclude_globs(self):
        config = ExclusionConfig.load_from_yaml(
            """
string_literal_finder:
  exclude_globs:
    - '_tools/**'
    - '**/*.g.dart'
    - '**/*.freezed.dart'
"""
        )
        assert config.exclude_globs == ("_tools/**", "**/*.g.dart", "**/*.freezed.dart")
        assert config.is_path_excluded("lorem/ipsum/test.dart") is False
        assert config.is_path_excluded("lorem/ipsum/test.freezed.dart") is True
        assert config.is_path_excluded("_tools/x.dart") is True

    def test_generated_files_are_always_excluded(self):
        config = ExclusionConfig()
        assert config.is_path_excluded("proto/message.pb.cc") is True
        assert config.is_path_excluded("message.pb.h") is True
        assert config.is_path_excluded("build/moc_mainwindow.cpp") is True
        assert config.is_path_excluded("ui_dialog.h") is True
        assert config.is_path_excluded("src/mainwindow.cpp") is False

    def test_directory_glob(self):
        config = ExclusionConfig.from_dict({
            "string_literal_finder": {"exclude_globs": ["third_party/"]}
        })
        assert config.is_path_excluded("third_party/zlib/inflate.c") is True
        assert config.is_path_excluded("src/third_party.cpp") is False

    def test_building_matcher_emits_no_warning(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            config = ExclusionConfig.from_dict({
                "string_literal_finder": {"exclude_globs": ["gen/**"]}
            })
        assert config.is_path_excluded("gen/strings.cpp") is True


class TestLoading:
    """設定ドキュメントの読み込みのテスト。"""

    def test_empty_options(self):
        config = ExclusionConfig.load_from_yaml(
            """
string_literal_finder:
  exclude_globs:
  ignore_constructor_calls:
  ignore_method_invocation_targets:
  ignore_string_literal_regexes:
  debug:
"""
        )
        assert config == ExclusionConfig()
        assert config.debug is False

    @pytest.mark.parametrize("document", ["", "other_tool:\n  key: value\n", "string_literal_finder:\n"])
    def test_missing_section_uses_defaults(self, document):
        config = ExclusionConfig.load_from_yaml(document)
        assert config.exclude_globs == ()
        assert config.constructor_targets == DEFAULT_IGNORE_CONSTRUCTOR_CALLS
        assert config.method_invocation_targets == DEFAULT_IGNORE_METHOD_INVOCATION_TARGETS
        assert config.debug_output_functions == DEFAULT_IGNORE_FUNCTION_CALLS

    def test_user_lists_are_merged_after_defaults(self):
        config = ExclusionConfig.from_dict({
            "string_literal_finder": {
                "ignore_constructor_calls": ["app::Key", "std::locale"],
                "ignore_method_invocation_targets": ["app::Tracer"],
                "ignore_function_calls": ["trace_printf"],
            }
        })
        assert config.constructor_targets[:len(DEFAULT_IGNORE_CONSTRUCTOR_CALLS)] == \
            DEFAULT_IGNORE_CONSTRUCTOR_CALLS
        assert config.constructor_targets[-1] == "app::Key"
        assert config.constructor_targets.count("std::locale") == 1
        assert "app::Tracer" in config.method_invocation_targets
        assert "spdlog::logger" in config.method_invocation_targets
        assert "trace_printf" in config.debug_output_functions

    def test_regexes_are_compiled(self):
        config = ExclusionConfig.from_dict({
            "string_literal_finder": {"ignore_string_literal_regexes": [r"^\d+$"]}
        })
        assert config.ignore_string_literal_regexes[0].search("42")

    def test_debug_flag(self):
        config = ExclusionConfig.load_from_yaml("string_literal_finder:\n  debug: true\n")
        assert config.debug is True

    def test_unknown_keys_are_ignored(self):
        config = ExclusionConfig.from_dict({"string_literal_finder": {"unknown": 1}})
        assert config == ExclusionConfig()


class TestInvalidConfiguration:
    """不正な設定ドキュメントのテスト。"""

    @pytest.mark.parametrize("document", [
        "string_literal_finder: [1, 2]\n",
        "- item\n",
        "string_literal_finder:\n  exclude_globs: '**/*.h'\n",
        "string_literal_finder:\n  exclude_globs: [1]\n",
        "string_literal_finder:\n  debug: 'yes'\n",
        "string_literal_finder:\n  ignore_string_literal_regexes: ['(']\n",
        "string_literal_finder: {exclude_globs: [\n",
    ])
    def test_raises_config_error(self, document):
        with pytest.raises(ConfigError):
            ExclusionConfig.load_from_yaml(document)

    def test_unreadable_file(self):
        with TemporaryDirectory() as tmpdir:
            with pytest.raises(ConfigError):
                ExclusionConfig.from_file(str(Path(tmpdir) / "missing.yaml"))


class TestDiscovery:
    """解析ルートでの設定ファイル探索のテスト。"""

    def test_from_project_reads_config_file(self):
        with TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "string_literal_finder.yaml").write_text(
                "string_literal_finder:\n  exclude_globs: ['gen/**']\n"
            )
            config = ExclusionConfig.from_project(tmpdir)
            assert config.exclude_globs == ("gen/**",)

    def test_from_project_reads_hidden_config_file(self):
        with TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / ".string_literal_finder.yaml").write_text(
                "string_literal_finder:\n  debug: true\n"
            )
            assert ExclusionConfig.from_project(tmpdir).debug is True

    def test_from_project_without_file_uses_defaults(self):
        with TemporaryDirectory() as tmpdir:
            assert ExclusionConfig.from_project(tmpdir) == ExclusionConfig()
