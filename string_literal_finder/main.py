"""文字列リテラル検出ツールのメインエントリーポイント。"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional
import logging

from .config import ExclusionConfig
from .exceptions import ConfigError, FrontEndUnavailableError
from .finder import StringLiteralFinder, create_clang_front_end
from .io.excel_writer import ExcelWriter
from .io.report_writer import (
    build_annotations,
    build_metrics,
    format_github_warning,
    write_json,
)
from .utils.logger import resolve_level, setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LITERALS_FOUND = 1
EXIT_USAGE = 2
EXIT_SOFTWARE = 70


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="string-literal-finder",
        description="ローカライズされていないC/C++の文字列リテラルを検出するツール"
    )
    parser.add_argument(
        "-p", "--path",
        required=True,
        help="解析ルートのディレクトリ"
    )
    parser.add_argument(
        "-c", "--config",
        help="設定ファイルパス（省略時は解析ルートの string_literal_finder.yaml）"
    )
    parser.add_argument(
        "-m", "--metrics-output-file",
        help="メトリクスを書き込むJSONファイル"
    )
    parser.add_argument(
        "--annotations-output-file-attest",
        metavar="FILE",
        help="アノテーションを書き込むJSONファイル"
    )
    parser.add_argument(
        "--annotations-print-github",
        action="store_true",
        help="GitHub Actions形式の警告行を出力する"
    )
    parser.add_argument(
        "--annotations-path-root",
        metavar="DIR",
        help="アノテーションのパスをこのディレクトリからの相対パスにする"
    )
    parser.add_argument(
        "--excel-output",
        metavar="FILE",
        help="検出結果を書き込むExcelファイル"
    )
    parser.add_argument(
        "-j", "--jobs",
        type=int,
        default=1,
        help="並列に解析するファイル数"
    )
    parser.add_argument(
        "--libclang",
        metavar="DIR",
        help="libclangライブラリのディレクトリ"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="詳細ログを有効にする"
    )
    parser.add_argument(
        "-s", "--silent",
        action="store_true",
        help="エラー以外のログを出力しない"
    )
    return parser


def _load_config(args: argparse.Namespace) -> ExclusionConfig:
    if args.config:
        if not Path(args.config).is_file():
            raise ConfigError(f"設定ファイルが見つかりません: {args.config}")
        return ExclusionConfig.from_file(args.config)
    return ExclusionConfig.from_project(args.path)


def main(argv: Optional[List[str]] = None) -> int:
    """メインエントリーポイント。

    Returns:
        終了コード（0: 検出なし、1: 検出あり、2: 使用方法・設定エラー、70: 解析失敗）
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    setup_logging(level=resolve_level(args.verbose, args.silent))

    if not Path(args.path).is_dir():
        logger.error(f"解析ルートが見つかりません: {args.path}")
        return EXIT_USAGE
    if args.jobs < 1:
        logger.error(f"--jobs must be at least 1, got {args.jobs}")
        return EXIT_USAGE

    try:
        config = _load_config(args)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_USAGE

    # 設定のdebugで詳細ログを有効にする
    if config.debug:
        setup_logging(level=resolve_level(args.verbose, args.silent, debug=True))

    try:
        front_end = None
        if args.libclang:
            front_end = create_clang_front_end(args.path, library_path=args.libclang)

        finder = StringLiteralFinder(
            args.path,
            config=config,
            front_end=front_end,
            workers=args.jobs
        )
        literals = finder.start()
    except FrontEndUnavailableError as e:
        logger.error(f"{e}")
        return EXIT_SOFTWARE
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return EXIT_SOFTWARE

    metrics = build_metrics(literals, finder.files_analyzed, finder.files_skipped)
    path_root = args.annotations_path_root

    try:
        if args.metrics_output_file:
            write_json(metrics, args.metrics_output_file)
        if args.annotations_output_file_attest:
            write_json(
                build_annotations(literals, path_root),
                args.annotations_output_file_attest
            )
        if args.excel_output:
            ExcelWriter(args.excel_output, path_root).write(literals, finder.files_analyzed)
    except OSError as e:
        logger.error(f"Failed to write output: {e}")
        return EXIT_SOFTWARE

    if args.annotations_print_github:
        for literal in literals:
            print(format_github_warning(literal, path_root))

    print(f"Found {metrics['stringLiterals']} literals in {metrics['stringLiteralsFiles']} files.")
    print(json.dumps(metrics, indent=2))

    return EXIT_LITERALS_FOUND if literals else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
