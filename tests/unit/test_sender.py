from __future__ import annotations

from typing import Any
from unittest.mock import patch
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from datadog_shipper.core.batch import Batch
from datadog_shipper.core.errors import DeliveryError, RetryExhaustedError
from datadog_shipper.core.sender import Sender, build_intake_url, frame_lines
from datadog_shipper.core.settings import HookSettings
from datadog_shipper.metrics.metrics import MetricsCollector
from datadog_shipper.testing import RecordingTransport


def _settings(**overrides: Any) -> HookSettings:
    return HookSettings(api_key="secret", retry_base_delay=0.0, **overrides)


def _batch(*lines: bytes) -> Batch:
    batch = Batch()
    for line in lines:
        batch.add(line)
    return batch


def _query(url: str) -> dict[str, list[str]]:
    return parse_qs(urlsplit(url).query)


def test_build_intake_url_defaults() -> None:
    url = build_intake_url(_settings())

    parts = urlsplit(url)
    assert f"{parts.scheme}://{parts.netloc}" == "https://http-intake.logs.datadoghq.com"
    assert parts.path == "/v1/input"
    assert _query(url) == {
        "ddsource": ["python"],
        "service": ["unknown"],
        "hostname": ["unknown"],
    }


def test_build_intake_url_includes_tags_and_identity() -> None:
    url = build_intake_url(
        _settings(
            service="billing",
            hostname="web-1",
            source="worker",
            tags={"env": "prod", "team": "core"},
        )
    )

    query = _query(url)
    assert query["service"] == ["billing"]
    assert query["hostname"] == ["web-1"]
    assert query["ddsource"] == ["worker"]
    assert query["ddtags"] == ["env:prod,team:core"]


@pytest.mark.parametrize(
    "region,host",
    [
        ("us", "http-intake.logs.datadoghq.com"),
        ("eu", "http-intake.logs.datadoghq.eu"),
        ("us-gov", "http-intake.logs.ddog-gov.com"),
    ],
)
def test_build_intake_url_per_region(region: str, host: str) -> None:
    parts = urlsplit(build_intake_url(_settings(region=region)))
    assert parts.scheme == "https"
    assert parts.netloc == host


def test_explicit_endpoint_overrides_region() -> None:
    url = build_intake_url(_settings(region="eu", endpoint="http://127.0.0.1:9000/"))
    assert url.startswith("http://127.0.0.1:9000/v1/input?")


def test_frame_lines_joins_as_json_array() -> None:
    assert frame_lines([b'{"a":1}', b'{"b":2}']) == b'[{"a":1},{"b":2}]'
    assert frame_lines([b"1"]) == b"[1]"


def test_deliver_posts_framed_batch_with_api_key_header() -> None:
    transport = RecordingTransport()
    sender = Sender(_settings(), transport)

    assert sender.deliver(_batch(b'{"message":"a"}', b'{"message":"b"}')) is True

    assert transport.attempts == 1
    request = transport.requests[0]
    assert request.url == sender.url
    assert request.content == b'[{"message":"a"},{"message":"b"}]'
    assert request.headers["DD-API-KEY"] == "secret"
    assert request.headers["Content-Type"] == "application/json"


def test_empty_batch_sends_nothing() -> None:
    transport = RecordingTransport()
    sender = Sender(_settings(), transport)

    assert sender.deliver(Batch()) is True
    assert transport.attempts == 0


def test_always_failing_batch_makes_exactly_max_retries_attempts() -> None:
    transport = RecordingTransport(default_status=500)
    errors: list[Exception] = []
    sender = Sender(_settings(max_retries=5), transport, error_handler=errors.append)

    assert sender.deliver(_batch(b"1")) is False

    assert transport.attempts == 5
    assert len(errors) == 1
    err = errors[0]
    assert isinstance(err, RetryExhaustedError)
    assert err.attempts == 5
    assert err.status_code == 500
    assert "failed to send after 5 attempts" in str(err)


def test_success_on_attempt_k_stops_retrying() -> None:
    transport = RecordingTransport([500, 503])
    errors: list[Exception] = []
    sender = Sender(_settings(max_retries=5), transport, error_handler=errors.append)

    assert sender.deliver(_batch(b"1", b"2")) is True

    assert transport.attempts == 3
    assert errors == []


def test_every_attempt_reuses_url_and_payload() -> None:
    transport = RecordingTransport([500, 500])
    sender = Sender(_settings(), transport)

    sender.deliver(_batch(b"1", b"2"))

    assert len({(r.url, r.content) for r in transport.requests}) == 1


def test_status_boundary_399_is_success_400_is_failure() -> None:
    ok = RecordingTransport([399])
    assert Sender(_settings(), ok).deliver(_batch(b"1")) is True
    assert ok.attempts == 1

    failing = RecordingTransport([400])
    sender = Sender(_settings(max_retries=1), failing, error_handler=lambda e: None)
    assert sender.deliver(_batch(b"1")) is False


def test_zero_max_retries_means_a_single_attempt() -> None:
    transport = RecordingTransport(default_status=500)
    sender = Sender(_settings(max_retries=0), transport, error_handler=lambda e: None)

    sender.deliver(_batch(b"1"))

    assert transport.attempts == 1


def test_negative_max_retries_retries_until_success() -> None:
    transport = RecordingTransport([500] * 7)
    sender = Sender(_settings(max_retries=-1), transport)

    assert sender.deliver(_batch(b"1")) is True
    assert transport.attempts == 8


def test_transport_exception_counts_as_failed_attempt() -> None:
    transport = RecordingTransport(
        [httpx.ConnectError("refused"), httpx.ReadTimeout("slow")],
        default_status=500,
    )
    errors: list[Exception] = []
    sender = Sender(_settings(max_retries=2), transport, error_handler=errors.append)

    assert sender.deliver(_batch(b"1")) is False

    assert transport.attempts == 2
    err = errors[0]
    assert isinstance(err, RetryExhaustedError)
    assert isinstance(err.last_error, DeliveryError)
    assert isinstance(err.last_error.cause, httpx.ReadTimeout)


def test_retry_warning_is_emitted_between_attempts() -> None:
    transport = RecordingTransport([500])
    sender = Sender(_settings(), transport)

    with patch("datadog_shipper.core.sender.warn") as mock_warn:
        assert sender.deliver(_batch(b"1")) is True

    mock_warn.assert_called_once()
    args, kwargs = mock_warn.call_args
    assert args[0] == "sender"
    assert kwargs["attempt"] == 1
    assert kwargs["status_code"] == 500


def test_error_handler_that_raises_is_contained() -> None:
    transport = RecordingTransport(default_status=500)

    def _boom(exc: Exception) -> None:
        raise RuntimeError("handler failed")

    sender = Sender(_settings(max_retries=1), transport, error_handler=_boom)

    with patch("datadog_shipper.core.diagnostics.warn") as mock_warn:
        assert sender.deliver(_batch(b"1")) is False

    assert any(call.args[1] == "error handler raised" for call in mock_warn.call_args_list)


def test_metrics_record_attempts_batches_and_failures() -> None:
    metrics = MetricsCollector()
    transport = RecordingTransport([500, 202], default_status=500)
    sender = Sender(
        _settings(max_retries=2),
        transport,
        error_handler=lambda e: None,
        metrics=metrics,
    )

    sender.deliver(_batch(b"1", b"2", b"3"))
    sender.deliver(_batch(b"4"))

    snap = metrics.snapshot()
    assert snap.delivery_attempts == 4
    assert snap.batches_sent == 1
    assert snap.lines_sent == 3
    assert snap.delivery_failures == 1
    assert snap.lines_dropped == {"delivery": 1}
