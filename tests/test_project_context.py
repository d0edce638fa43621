import os

import pytest

from tracker.models import make_project_context, normalize_project_path
from tracker.project_context import ProjectResolver, resolve_project_context


def test_first_workspace_folder_wins(tmp_path):
    one, two = tmp_path / "one", tmp_path / "two"
    context = resolve_project_context([str(one), str(two)])
    assert context.name == "one"
    assert context.path == normalize_project_path(str(one))


def test_active_file_without_workspace(tmp_path):
    script = tmp_path / "script.py"
    script.write_text("print('hi')\n", encoding="utf-8")
    context = resolve_project_context([], str(script))
    assert context.name == "script.py"
    assert context.path == normalize_project_path(str(script))


def test_unsaved_file_is_not_a_project(tmp_path):
    assert resolve_project_context([], str(tmp_path / "Untitled-1")) is None


def test_nothing_open():
    assert resolve_project_context([]) is None


def test_trailing_separator_is_dropped(tmp_path):
    assert normalize_project_path(str(tmp_path) + os.sep) == normalize_project_path(str(tmp_path))


def test_root_is_kept():
    assert normalize_project_path(os.sep) == os.path.normcase(os.path.abspath(os.sep))


def test_context_name_keeps_original_case(tmp_path):
    folder = tmp_path / "MyProject"
    assert make_project_context(str(folder)).name == "MyProject"


def test_resolver_follows_updates(tmp_path):
    resolver = ProjectResolver()
    assert resolver() is None

    resolver.set_workspace_folders([str(tmp_path / "alpha")])
    assert resolver().name == "alpha"


def test_resolver_falls_back_to_file_when_folders_go(tmp_path):
    script = tmp_path / "notes.md"
    script.write_text("", encoding="utf-8")
    resolver = ProjectResolver([str(tmp_path / "alpha")], active_file=str(script))
    assert resolver().name == "alpha"

    resolver.set_workspace_folders([])
    assert resolver().name == "notes.md"


def test_run_file_option_tracks_single_file(config, tmp_path):
    main = pytest.importorskip("main")
    script = tmp_path / "notes.md"
    script.write_text("", encoding="utf-8")

    args = main.build_parser().parse_args(["run", "--file", str(script)])
    tracker = main.make_tracker(config, args.file)
    tracker.start()

    assert tracker.data.current_session.project_name == "notes.md"
    assert main.build_parser().parse_args([]).file is None
