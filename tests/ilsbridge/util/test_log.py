import pytest

from ilsbridge.util.log import LoggerMixin, elapsed_time_logging


class Fetcher(LoggerMixin):
    pass


class TestElapsedTimeLogging:
    def test_start_and_completion(self) -> None:
        messages: list[str] = []
        with elapsed_time_logging(log_method=messages.append, message_prefix="Items"):
            assert messages == ["Items: Starting..."]
        assert len(messages) == 2
        assert messages[1].startswith("Items: Completed. (elapsed time:")
        assert messages[1].endswith(" seconds)")

    def test_completion_logged_when_block_raises(self) -> None:
        messages: list[str] = []
        with pytest.raises(ValueError):
            with elapsed_time_logging(log_method=messages.append, skip_start=True):
                raise ValueError()
        [message] = messages
        assert message.startswith("Completed.")


def test_logger_mixin() -> None:
    assert Fetcher.logger() is Fetcher().log
    assert Fetcher.logger().name == f"{Fetcher.__module__}.Fetcher"
