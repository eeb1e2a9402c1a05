import os
from pathlib import Path

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from gqlschemagen.watcher import (
    ChangeDebouncer,
    SchemaWatcher,
    SourceChangeHandler,
    WatchError,
    is_watched_source,
    watch_roots,
)


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.parametrize(
    "relative, watched",
    [
        ("user.go", True),
        ("billing/order.go", True),
        ("user_test.go", False),
        ("schema.graphqls", False),
        ("notes.go.swp", False),
        (".#user.go", False),
        ("vendor/lib/lib.go", False),
        ("billing/vendor/lib.go", False),
        ("testdata/sample.go", False),
        (".git/hooks/x.go", False),
        (".cache/user.go", False),
        ("_old/user.go", False),
    ],
)
def test_is_watched_source(tmp_path: Path, relative: str, watched: bool) -> None:
    root = tmp_path / "models"
    assert is_watched_source(str(root / relative), str(root)) is watched


def test_hidden_directories_above_the_root_do_not_matter(tmp_path: Path) -> None:
    root = tmp_path / ".config" / "models"
    assert is_watched_source(str(root / "user.go"), str(root))


def test_debouncer_coalesces_bursts() -> None:
    clock = FakeClock()
    debouncer = ChangeDebouncer(delay=0.3, clock=clock)
    assert debouncer.take() == []

    debouncer.push("/src/b.go")
    clock.now += 0.2
    debouncer.push("/src/a.go")
    debouncer.push("/src/b.go")
    clock.now += 0.2
    assert debouncer.take() == []
    assert debouncer.pending_count == 2

    clock.now += 0.1
    assert debouncer.take() == ["/src/a.go", "/src/b.go"]
    assert debouncer.take() == []
    assert debouncer.pending_count == 0


def test_handler_forwards_go_source_writes(tmp_path: Path) -> None:
    root = str(tmp_path)
    clock = FakeClock()
    debouncer = ChangeDebouncer(delay=0, clock=clock)
    handler = SourceChangeHandler(root, debouncer)

    handler.dispatch(FileModifiedEvent(os.path.join(root, "user.go")))
    handler.dispatch(FileCreatedEvent(os.path.join(root, "user_test.go")))
    handler.dispatch(FileDeletedEvent(os.path.join(root, "vendor", "x.go")))
    handler.dispatch(DirModifiedEvent(os.path.join(root, "billing")))
    handler.dispatch(FileMovedEvent(os.path.join(root, "tmp.txt"), os.path.join(root, "order.go")))

    assert debouncer.take() == [os.path.join(root, "order.go"), os.path.join(root, "user.go")]


def test_watch_roots(tmp_path: Path) -> None:
    models = tmp_path / "models"
    (models / "billing").mkdir(parents=True)
    (models / "user.go").write_text("package models\n", encoding="utf-8")
    api = tmp_path / "api"
    api.mkdir()

    roots = watch_roots([
        str(models / "billing"),
        str(tmp_path / "api" / "**" / "*.go"),
        str(models / "user.go"),
        str(tmp_path / "missing"),
    ])
    assert roots == [str(api), str(models)]


def test_poll_regenerates_once_changes_settle(write_go, make_config, tmp_path: Path) -> None:
    path = write_go("user.go", "package models\n\n// @gqlType\ntype User struct {\n\tName string\n}\n")
    clock = FakeClock()
    runs = []
    watcher = SchemaWatcher(
        make_config(), delay=0.3, clock=clock, on_result=lambda result, changed: runs.append(changed)
    )
    assert watcher.roots == [os.path.abspath(tmp_path / "models")]
    assert watcher.poll() is None

    watcher.debouncer.push(str(path))
    assert watcher.poll() is None

    clock.now += 0.5
    result = watcher.poll()
    assert result.success
    assert runs == [[str(path)]]
    assert "type User {" in (tmp_path / "schema" / "gqlschemagen.graphqls").read_text(encoding="utf-8")
    assert watcher.poll() is None


def test_poll_reports_failures(write_go, make_config) -> None:
    path = write_go("broken.go", "package models\n\n// @gqlType\ntype Broken struct {\n\tX Missing\n}\n")
    clock = FakeClock()
    watcher = SchemaWatcher(make_config(), delay=0, clock=clock)
    watcher.debouncer.push(str(path))
    result = watcher.poll()
    assert not result.success
    assert "Missing" in result.error_message


def test_start_without_directories(make_config, tmp_path: Path) -> None:
    watcher = SchemaWatcher(make_config(packages=[str(tmp_path / "missing")]))
    assert watcher.roots == []
    with pytest.raises(WatchError):
        watcher.start()
