"""StringLiteralFinderのテスト。"""

from pathlib import Path
from tempfile import TemporaryDirectory

from fakes import FakeFrontEnd
from string_literal_finder.config import ExclusionConfig
from string_literal_finder.finder import StringLiteralFinder


def _write(root: Path, relative_path: str, content: str) -> Path:
    path = root / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestStringLiteralFinder:
    """StringLiteralFinderのテスト。"""

    def test_excluded_file_is_skipped(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write(root, "generated/strings.cpp", 'const char* s = "Hello";\n')
            config = ExclusionConfig.from_dict({
                "string_literal_finder": {"exclude_globs": ["generated/**"]}
            })
            front_end = FakeFrontEnd()

            finder = StringLiteralFinder(tmpdir, config=config, front_end=front_end)
            found = finder.start()

            assert found == []
            assert finder.files_analyzed == []
            assert len(finder.files_skipped) == 1
            assert front_end.resolved == []

    def test_finds_literals_in_candidate_order(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write(root, "src/b.cpp", 'f("b1"); f("b2");\n')
            _write(root, "src/a.h", 'f("a1");\n')
            _write(root, "README.md", '"not source"\n')

            finder = StringLiteralFinder(tmpdir, front_end=FakeFrontEnd())
            found = finder.start()

            assert [f.string_value for f in found] == ["a1", "b1", "b2"]
            assert [Path(p).name for p in finder.files_analyzed] == ["a.h", "b.cpp"]
            assert finder.files_skipped == []
            assert [Path(p).name for p in finder.files_with_literals] == ["a.h", "b.cpp"]

    def test_trailing_marker_comment(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write(root, "main.cpp", 'f("skip"); // NON-NLS\nf("keep");\n')

            found = StringLiteralFinder(tmpdir, front_end=FakeFrontEnd()).start()

            assert [f.string_value for f in found] == ["keep"]

    def test_generated_file_is_skipped_by_default(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write(root, "moc_window.cpp", 'f("generated");\n')
            _write(root, "window.cpp", 'f("Title");\n')

            finder = StringLiteralFinder(tmpdir, front_end=FakeFrontEnd())
            found = finder.start()

            assert [f.string_value for f in found] == ["Title"]
            assert [Path(p).name for p in finder.files_skipped] == ["moc_window.cpp"]

    def test_resolution_failure_skips_file(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write(root, "broken.cpp", 'f("broken");\n')
            _write(root, "ok.cpp", 'f("ok");\n')

            finder = StringLiteralFinder(tmpdir, front_end=FakeFrontEnd(failing=["broken.cpp"]))
            found = finder.start()

            assert [f.string_value for f in found] == ["ok"]
            assert [Path(p).name for p in finder.files_analyzed] == ["ok.cpp"]
            assert [Path(p).name for p in finder.files_skipped] == ["broken.cpp"]

    def test_unexpected_front_end_error_skips_file(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write(root, "a.cpp", 'f("bad");\n')
            _write(root, "b.cpp", 'f("good");\n')

            for workers in (1, 2):
                front_end = FakeFrontEnd(crashing=["a.cpp"])
                finder = StringLiteralFinder(tmpdir, front_end=front_end, workers=workers)
                found = finder.start()

                assert [f.string_value for f in found] == ["good"]
                assert [Path(p).name for p in finder.files_analyzed] == ["b.cpp"]
                assert [Path(p).name for p in finder.files_skipped] == ["a.cpp"]

    def test_parallel_run_matches_sequential_run(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            for i in range(12):
                _write(root, f"src/file_{i:02d}.cpp", f'f("first {i}"); f("second {i}");\n')

            sequential = StringLiteralFinder(tmpdir, front_end=FakeFrontEnd()).start()
            parallel = StringLiteralFinder(tmpdir, front_end=FakeFrontEnd(), workers=4).start()

            assert parallel == sequential
            assert len(parallel) == 24

    def test_restart_resets_results(self):
        with TemporaryDirectory() as tmpdir:
            _write(Path(tmpdir), "a.cpp", 'f("a");\n')
            finder = StringLiteralFinder(tmpdir, front_end=FakeFrontEnd())

            finder.start()
            finder.start()

            assert len(finder.found_string_literals) == 1
            assert len(finder.files_analyzed) == 1
