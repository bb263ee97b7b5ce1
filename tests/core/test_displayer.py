"""
Unit tests for the display collaborator.
"""

import io

from iacenv.core.display import Displayer, NullDisplayer


class TestDisplayer:
    """Tests for Displayer class."""

    def test_display_writes_line(self):
        """Test messages go to the stream."""
        stream = io.StringIO()
        Displayer(stream=stream).display("Installing OpenTofu 1.6.2")

        assert stream.getvalue() == "Installing OpenTofu 1.6.2\n"

    def test_quiet_suppresses_output(self):
        """Test quiet mode prints nothing."""
        stream = io.StringIO()
        displayer = Displayer(quiet=True, stream=stream)
        displayer.display("hidden")
        displayer.warning("hidden too")

        assert stream.getvalue() == ""

    def test_queue_held_until_flush(self):
        """Test queued diagnostics appear only on flush, in order."""
        stream = io.StringIO()
        displayer = Displayer(stream=stream)
        displayer.queue("first")
        displayer.queue("second")

        assert stream.getvalue() == ""
        assert displayer.pending == ["first", "second"]

        emitted = displayer.flush()

        assert emitted == ["first", "second"]
        assert stream.getvalue() == "first\nsecond\n"
        assert displayer.pending == []

    def test_flush_empty(self):
        """Test flushing with nothing queued."""
        assert Displayer(stream=io.StringIO()).flush() == []

    def test_alert_shown_when_quiet(self):
        """Test alerts about weakened checks ignore quiet mode."""
        stream = io.StringIO()
        Displayer(quiet=True, stream=stream).alert("signature skipped")

        assert stream.getvalue() == "Warning: signature skipped\n"

    def test_warning_prefix(self):
        """Test warnings are labelled."""
        stream = io.StringIO()
        Displayer(stream=stream).warning("signature skipped")

        assert stream.getvalue() == "Warning: signature skipped\n"


class TestNullDisplayer:
    """Tests for NullDisplayer class."""

    def test_discards_everything(self, capsys):
        """Test nothing is printed or kept."""
        displayer = NullDisplayer()
        displayer.display("a")
        displayer.queue("b")
        displayer.warning("c")
        displayer.alert("d")

        assert displayer.flush() == []
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""
