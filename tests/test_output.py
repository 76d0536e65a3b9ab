"""
Output Tests
============
"""

import asyncio

import pytest

from mjpeg_stream.stream.output import QueueOutput


async def _drain(output: QueueOutput) -> list:
    return [chunk async for chunk in output.body()]


class TestQueueOutput:

    def test_invalid_maxsize(self):
        with pytest.raises(ValueError):
            QueueOutput(maxsize=0)

    def test_status_fixed_after_head(self):
        async def scenario():
            output = QueueOutput()
            output.set_status(404)
            assert output.status_code == 404
            output.write_head(200, {"Content-Type": "x"})
            output.set_status(500)
            return output

        output = asyncio.run(scenario())
        assert output.status_code == 200
        assert output.headers_sent
        with pytest.raises(RuntimeError):
            output.write_head(200, {})

    def test_chunks_in_order_until_close(self):
        async def scenario():
            output = QueueOutput(maxsize=8)
            output.write(b"one")
            output.write(b"two")
            output.close()
            output.write(b"late")
            return await _drain(output), output

        chunks, output = asyncio.run(scenario())
        assert chunks == [b"one", b"two"]
        assert output.bytes_written == 6

    def test_drops_oldest_on_overflow(self):
        async def scenario():
            output = QueueOutput(maxsize=2)
            for chunk in (b"a", b"b", b"c"):
                output.write(chunk)
            output.close()
            return await _drain(output), output

        chunks, output = asyncio.run(scenario())
        assert chunks == [b"b", b"c"]
        assert output.dropped_count == 1
        assert output.metrics()["dropped_count"] == 1

    def test_leaving_body_early_signals_disconnect(self):
        calls = []

        async def scenario():
            output = QueueOutput()
            output.on_disconnect(lambda: calls.append("gone"))
            output.write(b"first")
            output.write(b"second")
            body = output.body()
            first = await body.__anext__()
            await body.aclose()
            return first, output

        first, output = asyncio.run(scenario())
        assert first == b"first"
        assert calls == ["gone"]
        assert output.disconnected

    def test_no_disconnect_after_close(self):
        calls = []

        async def scenario():
            output = QueueOutput()
            output.on_disconnect(lambda: calls.append("gone"))
            output.close()
            await _drain(output)
            output.disconnect()

        asyncio.run(scenario())
        assert calls == []
