from __future__ import annotations

from unittest.mock import Mock, patch

from pg_xlsx_exporter.services.progress import ProgressTracker, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch('sys.stdout.isatty', return_value=True):
        assert is_tty_enabled() is True
    with patch('sys.stdout.isatty', return_value=False):
        assert is_tty_enabled() is False


class TestProgressTracker:
    def test_init_with_tty_enabled(self):
        with patch('pg_xlsx_exporter.services.progress.is_tty_enabled', return_value=True), \
             patch('pg_xlsx_exporter.services.progress.tqdm') as mock_tqdm:
            tracker = ProgressTracker(3, description="Exporting tables")
            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=3,
                desc="Exporting tables",
                unit="table",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )

    def test_init_with_tty_disabled(self):
        with patch('pg_xlsx_exporter.services.progress.is_tty_enabled', return_value=False):
            tracker = ProgressTracker(3)
            assert tracker.enabled is False
            assert tracker.pbar is None
            # no-ops without a bar
            tracker.start_table("JOB_ID")
            tracker.finish_table()
            tracker.set_postfix(rows=1)
            tracker.close()
            assert tracker.current_table == 1

    def test_table_lifecycle_updates_bar(self):
        mock_pbar = Mock()
        with patch('pg_xlsx_exporter.services.progress.is_tty_enabled', return_value=True), \
             patch('pg_xlsx_exporter.services.progress.tqdm', return_value=mock_pbar):
            with ProgressTracker(2, description="Exporting tables") as tracker:
                tracker.start_table("DEPARTMENT_ID")
                mock_pbar.set_description.assert_called_with("Exporting tables (DEPARTMENT_ID)")
                tracker.finish_table()
                mock_pbar.update.assert_called_once_with(1)
                mock_pbar.set_description.assert_called_with("Exporting tables")
                tracker.set_postfix(rows=4)
                mock_pbar.set_postfix.assert_called_once_with(rows=4)
            mock_pbar.close.assert_called_once()
            assert tracker.pbar is None
