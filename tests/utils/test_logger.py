import datetime

from app.utils import logger as logger_module
from app.utils.logger import cleanup_old_logs, setup_logger


def test_cleanup_old_logs_removes_only_expired_date_dirs(tmp_path, monkeypatch):
    monkeypatch.setattr(logger_module, "LOG_DIR", tmp_path)
    old_dir = tmp_path / "2000-01-01"
    old_dir.mkdir()
    (old_dir / "timeline_events_2000-01-01_00-00-00.log").write_text("old")
    today_dir = tmp_path / datetime.date.today().strftime("%Y-%m-%d")
    today_dir.mkdir()
    (today_dir / "timeline_events_now.log").write_text("new")
    (tmp_path / "notes").mkdir()

    assert cleanup_old_logs(keep_days=7) == (1, 0)
    assert not old_dir.exists()
    assert today_dir.exists()
    assert (tmp_path / "notes").exists()


def test_cleanup_old_logs_without_log_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(logger_module, "LOG_DIR", tmp_path / "missing")
    assert cleanup_old_logs() == (0, 0)


def test_setup_logger_does_not_duplicate_handlers():
    first = setup_logger("test_logger_handlers", level="DEBUG")
    handler_count = len(first.handlers)
    second = setup_logger("test_logger_handlers", level="DEBUG")
    assert second is first
    assert len(second.handlers) == handler_count


def test_cleanup_old_logs_counts_undeletable_entries(tmp_path, monkeypatch):
    monkeypatch.setattr(logger_module, "LOG_DIR", tmp_path)
    old_dir = tmp_path / "2000-01-01"
    (old_dir / "nested").mkdir(parents=True)
    (old_dir / "timeline_events_old.log").write_text("old")

    assert cleanup_old_logs(keep_days=7) == (1, 1)
    assert (old_dir / "nested").exists()
