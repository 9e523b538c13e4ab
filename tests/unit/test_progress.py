from __future__ import annotations

from unittest.mock import Mock, patch

from promo_catalog.services.progress import ProgressTracker, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch("sys.stdout.isatty", return_value=True):
        assert is_tty_enabled() is True

    with patch("sys.stdout.isatty", return_value=False):
        assert is_tty_enabled() is False


class TestProgressTracker:
    def test_init_with_tty_enabled(self):
        with patch("promo_catalog.services.progress.is_tty_enabled", return_value=True), \
             patch("promo_catalog.services.progress.tqdm") as mock_tqdm:

            tracker = ProgressTracker(5, description="Resolving images")

            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=5,
                desc="Resolving images",
                unit="image",
                leave=True,
                ncols=80,
                ascii=True,
            )

    def test_init_with_tty_disabled(self):
        with patch("promo_catalog.services.progress.is_tty_enabled", return_value=False):
            tracker = ProgressTracker(3)

            assert tracker.enabled is False
            assert tracker.pbar is None

            tracker.advance(True)
            tracker.advance(False)
            assert (tracker.loaded, tracker.failed, tracker.done) == (1, 1, 2)
            tracker.close()

    def test_advance_updates_bar_and_postfix(self):
        mock_pbar = Mock()
        with patch("promo_catalog.services.progress.is_tty_enabled", return_value=True), \
             patch("promo_catalog.services.progress.tqdm", return_value=mock_pbar):

            tracker = ProgressTracker(2)
            tracker.advance(True)
            tracker.advance(False)

            assert mock_pbar.update.call_count == 2
            mock_pbar.set_postfix.assert_called_with(ok=1, failed=1)

    def test_context_manager_closes_bar(self):
        mock_pbar = Mock()
        with patch("promo_catalog.services.progress.is_tty_enabled", return_value=True), \
             patch("promo_catalog.services.progress.tqdm", return_value=mock_pbar):

            with ProgressTracker(1) as tracker:
                tracker.advance(True)

            mock_pbar.close.assert_called_once()
            assert tracker.pbar is None
