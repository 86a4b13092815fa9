"""Tests for the outcome-counting progress bars"""

from bardic_forge.core.progress import ConversionProgressBar, ImportProgressBar


class TestImportProgressBar:
    """Test import outcome counting"""

    def test_counts(self):
        with ImportProgressBar(total=4) as progress:
            progress.update(success=True)
            progress.update(success=False)
            progress.update(success=True, skipped=True)
            progress.update(success=True)

        assert progress.counts == {"imported": 2, "failed": 1, "skipped": 1}
        assert progress.completed == 4

    def test_skipped_hidden_until_counted(self):
        progress = ImportProgressBar(total=2)
        assert "⊘" not in progress.status_text()
        progress.update(success=False, skipped=True)
        assert "⊘ 1" in progress.status_text()

    def test_stop_without_start(self):
        ImportProgressBar(total=1).stop()


class TestConversionProgressBar:
    """Test conversion outcome counting"""

    def test_counts(self):
        with ConversionProgressBar(total=2) as progress:
            progress.update(success=True)
            progress.update(success=False)

        assert progress.counts == {"converted": 1, "failed": 1}
        assert "✓ 1" in progress.status_text()
