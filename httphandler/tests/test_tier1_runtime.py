"""Tests for tier1_runtime modules."""
from __future__ import annotations

import io
import json
import threading
import xml.etree.ElementTree as ET

import pytest
import structlog

from httphandler.tier0_core.errors import HandlerError, InvalidArgumentError, PanicError
from httphandler.tier0_core.http import WireError
from httphandler.tier1_runtime.context import (
    RequestContext,
    get_context,
    get_request_id,
    reset_context,
    set_context,
)
from httphandler.tier1_runtime.encoders import (
    EncoderRegistry,
    default_registry,
    encode_html,
    encode_json,
    encode_xml,
)
from httphandler.tier1_runtime import invoke
from httphandler.tier1_runtime.invoke import safe_call
from httphandler.tier1_runtime.middleware import BufferedResponseWriter, Request
from httphandler.tier1_runtime.negotiate import media_type, negotiate
from httphandler.tier1_runtime.serialize import serialize
from httphandler.tier1_runtime.writer import ResponseWriter, SafeResponseWriter


def make_request(accept: str | None = None, request_id: str = "0123456789", **environ) -> Request:
    if accept is not None:
        environ["HTTP_ACCEPT"] = accept
    return Request(environ=environ, context=RequestContext(request_id=request_id))


def json_encoder(writer, request, wire_error):
    writer.write("json")


def html_encoder(writer, request, wire_error):
    writer.write("html")


def fallback_encoder(writer, request, wire_error):
    writer.write("fallback")


class CountingWriter(BufferedResponseWriter):
    def __init__(self) -> None:
        super().__init__()
        self.header_calls: list[int] = []

    def write_header(self, status_code: int) -> None:
        self.header_calls.append(status_code)
        super().write_header(status_code)


# ── writer ─────────────────────────────────────────────────────────────────

class TestSafeResponseWriter:
    def test_satisfies_protocol(self):
        assert isinstance(SafeResponseWriter(BufferedResponseWriter()), ResponseWriter)

    def test_first_status_wins(self):
        sink = CountingWriter()
        guard = SafeResponseWriter(sink)
        for code in (400, 500, 201, 400):
            guard.write_header(code)
        assert sink.header_calls == [400]
        assert sink.status_code == 400

    def test_not_written_initially(self):
        assert SafeResponseWriter(BufferedResponseWriter()).written is False

    def test_body_writes_always_forward(self):
        sink = BufferedResponseWriter()
        guard = SafeResponseWriter(sink)
        guard.write_header(400)
        guard.write(b"bad ")
        guard.write("request")
        assert guard.written is True
        assert sink.body == b"bad request"

    def test_write_before_header_blocks_later_status(self):
        sink = CountingWriter()
        guard = SafeResponseWriter(sink)
        guard.write(b"ok")
        guard.write_header(500)
        assert sink.header_calls == []
        assert sink.status_code == 200

    def test_headers_are_shared_with_sink(self):
        sink = BufferedResponseWriter()
        guard = SafeResponseWriter(sink)
        guard.headers["Content-Type"] = "text/html"
        assert sink.headers["Content-Type"] == "text/html"

    def test_concurrent_commits_forward_once(self):
        sink = CountingWriter()
        guard = SafeResponseWriter(sink)
        start = threading.Barrier(16)

        def commit(code: int) -> None:
            start.wait()
            guard.write_header(code)

        threads = [threading.Thread(target=commit, args=(400 + i,)) for i in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(sink.header_calls) == 1

    def test_body_write_does_not_hold_the_lock(self):
        class ReentrantWriter(BufferedResponseWriter):
            guard: SafeResponseWriter

            def write(self, data):
                assert self.guard.written is True
                return super().write(data)

        sink = ReentrantWriter()
        guard = SafeResponseWriter(sink)
        sink.guard = guard
        guard.write(b"streamed")
        assert sink.body == b"streamed"


# ── encoders ───────────────────────────────────────────────────────────────

class TestEncoderRegistry:
    def test_keys_are_lowercased(self):
        registry = EncoderRegistry()
        registry.set_encoder("Text/HTML", html_encoder)
        assert list(registry) == ["text/html"]
        assert registry.get("TEXT/html") is html_encoder
        assert "text/HTML" in registry

    def test_set_encoders_lowercases_and_merges(self):
        registry = EncoderRegistry({"application/json": json_encoder})
        registry.set_encoders({"TEXT/HTML": html_encoder})
        assert sorted(registry) == ["application/json", "text/html"]
        assert len(registry) == 2

    def test_set_encoder_overwrites(self):
        registry = EncoderRegistry({"application/json": json_encoder})
        registry.set_encoder("application/json", html_encoder)
        assert registry["application/json"] is html_encoder

    def test_set_encoder_rejects_empty_content_type(self):
        with pytest.raises(InvalidArgumentError, match="content-type cannot be empty"):
            EncoderRegistry().set_encoder("", json_encoder)

    def test_set_encoder_rejects_missing_encoder(self):
        with pytest.raises(InvalidArgumentError, match="encoder cannot be None"):
            EncoderRegistry().set_encoder("text/html", None)

    def test_set_encoders_rejects_none(self):
        with pytest.raises(InvalidArgumentError, match="encoders cannot be None"):
            EncoderRegistry().set_encoders(None)

    def test_set_fallback_validation(self):
        registry = EncoderRegistry()
        with pytest.raises(InvalidArgumentError, match="content-type cannot be empty"):
            registry.set_fallback_encoder("", json_encoder)
        with pytest.raises(InvalidArgumentError, match="encoder cannot be None"):
            registry.set_fallback_encoder("text/html", None)

    def test_fallback_defaults_to_json(self):
        assert EncoderRegistry().fallback == (encode_json, "application/json")

    def test_fallback_content_type_is_lowercased(self):
        registry = EncoderRegistry()
        registry.set_fallback_encoder("Application/Octet-Stream", fallback_encoder)
        assert registry.fallback == (fallback_encoder, "application/octet-stream")

    def test_remove_and_delete(self):
        registry = default_registry()
        registry.remove("TEXT/HTML")
        del registry["text/xml"]
        registry.remove("image/png")
        assert sorted(registry) == ["application/json", "application/xml"]
        with pytest.raises(KeyError):
            del registry["text/xml"]

    def test_default_registry(self):
        registry = default_registry()
        assert sorted(registry) == ["application/json", "application/xml", "text/html", "text/xml"]
        assert registry["text/xml"] is encode_xml
        assert registry.fallback == (encode_json, "application/json")

    def test_default_registry_custom_fallback(self):
        assert default_registry("text/html").fallback == (encode_html, "text/html")


class TestDefaultEncoders:
    def test_json_string_error(self):
        sink = BufferedResponseWriter()
        encode_json(sink, make_request(), WireError(400, "bad request", "0123456789"))
        assert sink.body.endswith(b"\n")
        assert json.loads(sink.body) == {
            "StatusCode": 400,
            "Error": "bad request",
            "RequestUUID": "0123456789",
        }

    def test_json_exception_error_uses_message(self):
        sink = BufferedResponseWriter()
        encode_json(sink, make_request(), WireError(500, RuntimeError("boom"), "r"))
        assert json.loads(sink.body)["Error"] == "boom"

    def test_json_structured_error(self):
        sink = BufferedResponseWriter()
        error = {"Title": "Some Error", "Details": "Not implemented"}
        encode_json(sink, make_request(), WireError(500, error, "r"))
        assert json.loads(sink.body)["Error"] == error

    def test_xml_string_error(self):
        sink = BufferedResponseWriter()
        encode_xml(sink, make_request(), WireError(400, "bad request", "0123456789"))
        root = ET.fromstring(sink.body)
        assert root.tag == "WireError"
        assert root.findtext("StatusCode") == "400"
        assert root.findtext("Error") == "bad request"
        assert root.findtext("RequestUUID") == "0123456789"

    def test_xml_structured_error(self):
        sink = BufferedResponseWriter()
        error = {"Title": "Some Error", "codes": [1, 2], "bad key": True}
        encode_xml(sink, make_request(), WireError(500, error, "r"))
        root = ET.fromstring(sink.body)
        assert root.findtext("Error/Title") == "Some Error"
        assert [e.text for e in root.findall("Error/codes/item")] == ["1", "2"]
        assert root.find("Error/entry").get("name") == "bad key"
        assert root.findtext("Error/entry") == "true"

    def test_xml_replaces_characters_xml_cannot_carry(self):
        sink = BufferedResponseWriter()
        error = {"bad\x00key": "tab\tok", "detail": "esc\x1bape"}
        encode_xml(sink, make_request(), WireError(400, "bad\x1binput", "r"))
        assert ET.fromstring(sink.body).findtext("Error") == "bad\ufffdinput"

        sink = BufferedResponseWriter()
        encode_xml(sink, make_request(), WireError(400, error, "r"))
        root = ET.fromstring(sink.body)
        assert root.find("Error/entry").get("name") == "bad\ufffdkey"
        assert root.findtext("Error/entry") == "tab\tok"
        assert root.findtext("Error/detail") == "esc\ufffdape"

    def test_html_escapes_error(self):
        sink = BufferedResponseWriter()
        encode_html(sink, make_request(), WireError(400, "<b>bad request</b>", "0123456789"))
        body = sink.body.decode()
        assert body.startswith("<!DOCTYPE html>")
        assert "<title>400 Error</title>" in body
        assert "&lt;b&gt;bad request&lt;/b&gt;" in body
        assert "<code>0123456789</code>" in body


class TestSerialize:
    def test_json(self):
        assert json.loads(serialize({"a": 1})) == {"a": 1}

    def test_unsupported_format(self):
        with pytest.raises(ValueError, match="Unsupported serialize format"):
            serialize({"a": 1}, "yaml")


# ── negotiate ──────────────────────────────────────────────────────────────

@pytest.fixture
def registry() -> EncoderRegistry:
    return EncoderRegistry(
        {"application/json": json_encoder, "text/html": html_encoder},
        fallback=(fallback_encoder, "application/octet-stream"),
    )


class TestNegotiate:
    def test_media_type_strips_params(self):
        assert media_type("Text/HTML; charset=utf-8; q=0.5") == "text/html"

    def test_media_type_rejects_malformed(self):
        assert media_type("") is None
        assert media_type("html") is None
        assert media_type("*/") is None

    def test_header_order_wins_over_quality(self, registry):
        encoder, ct = negotiate("", ["text/html;q=0.1", "application/json;q=0.9"], registry)
        assert (encoder, ct) == (html_encoder, "text/html")
        encoder, ct = negotiate("", ["application/json;q=0.1", "text/html;q=0.9"], registry)
        assert (encoder, ct) == (json_encoder, "application/json")

    def test_unregistered_values_are_skipped(self, registry):
        encoder, ct = negotiate("", ["image/png", "bogus", "TEXT/HTML"], registry)
        assert (encoder, ct) == (html_encoder, "text/html")

    def test_override_bypasses_accept(self, registry):
        encoder, ct = negotiate("Application/JSON", ["text/html"], registry)
        assert (encoder, ct) == (json_encoder, "application/json")

    def test_unregistered_override_uses_fallback(self, registry):
        encoder, ct = negotiate("application/pdf", ["text/html"], registry)
        assert (encoder, ct) == (fallback_encoder, "application/octet-stream")

    def test_no_accept_uses_fallback(self, registry):
        assert negotiate(None, [], registry) == (fallback_encoder, "application/octet-stream")

    def test_no_match_uses_fallback(self, registry):
        assert negotiate("", ["*/*", ""], registry) == (fallback_encoder, "application/octet-stream")


# ── invoke ─────────────────────────────────────────────────────────────────

class TestSafeCall:
    def test_success_returns_none(self):
        def handler(w, r):
            w.write_header(204)

        sink = BufferedResponseWriter()
        assert safe_call(handler, sink, make_request()) is None
        assert sink.status_code == 204

    def test_returned_error_is_unchanged(self):
        err = HandlerError(status_code=400, public_error="bad request")
        assert safe_call(lambda w, r: err, BufferedResponseWriter(), make_request()) is err

    def test_raised_handler_error_counts_as_returned(self):
        err = HandlerError(status_code=404)

        def handler(w, r):
            raise err

        assert safe_call(handler, BufferedResponseWriter(), make_request()) is err

    def test_exception_becomes_panic(self):
        cause = ValueError("oops")

        def handler(w, r):
            raise cause

        err = safe_call(handler, BufferedResponseWriter(), make_request())
        assert err.status_code == 0
        assert err.public_error is None
        assert isinstance(err.internal_error, PanicError)
        assert str(err.internal_error) == "panic: oops"
        assert err.internal_error.__cause__ is cause

    def test_exception_without_message_uses_repr(self):
        def handler(w, r):
            raise KeyError()

        err = safe_call(handler, BufferedResponseWriter(), make_request())
        assert str(err.internal_error) == "panic: KeyError()"

    def test_panic_handler_receives_context_and_can_mutate(self):
        seen = []

        def on_panic(ctx, err):
            seen.append((ctx.request_id, str(err.internal_error)))
            err.status_code = 503
            err.public_error = "try again later"

        def handler(w, r):
            raise RuntimeError("down")

        err = safe_call(handler, BufferedResponseWriter(), make_request(request_id="abc"), on_panic)
        assert seen == [("abc", "panic: down")]
        assert err.status_code == 503
        assert err.public_error == "try again later"

    def test_failing_panic_handler_is_contained(self):
        def on_panic(ctx, err):
            raise RuntimeError("hook failed")

        def handler(w, r):
            raise RuntimeError("down")

        err = safe_call(handler, BufferedResponseWriter(), make_request(), on_panic)
        assert str(err.internal_error) == "panic: down"

    def test_unexpected_return_value_becomes_panic(self):
        seen = []

        def on_panic(ctx, err):
            seen.append(str(err.internal_error))
            err.status_code = 502

        err = safe_call(lambda w, r: "oops", BufferedResponseWriter(), make_request(), on_panic)
        assert isinstance(err, HandlerError)
        assert isinstance(err.internal_error, PanicError)
        assert isinstance(err.internal_error.__cause__, TypeError)
        assert seen == ["panic: handler returned str, expected HandlerError or None"]
        assert err.status_code == 502

    def test_logger_is_only_fetched_when_the_hook_fails(self, monkeypatch):
        fetched = []

        def get_logger(name):
            fetched.append(name)
            return structlog.get_logger(name)

        monkeypatch.setattr(invoke, "get_logger", get_logger)

        def handler(w, r):
            raise RuntimeError("down")

        safe_call(handler, BufferedResponseWriter(), make_request(), lambda ctx, err: None)
        assert fetched == []

        def on_panic(ctx, err):
            raise RuntimeError("hook failed")

        safe_call(handler, BufferedResponseWriter(), make_request(), on_panic)
        assert fetched == [invoke.__name__]


# ── context ────────────────────────────────────────────────────────────────

class TestContext:
    def test_set_get_and_reset(self):
        assert get_context() is None
        ctx = RequestContext(request_id="req-abc")
        token = set_context(ctx)
        try:
            assert get_context() is ctx
            assert get_request_id() == "req-abc"
        finally:
            reset_context(token)
        assert get_context() is None

    def test_request_id_absent_outside_request(self):
        assert get_request_id() is None

    def test_request_id_from_request(self):
        assert get_request_id(make_request(request_id="r-1")) == "r-1"


# ── request ────────────────────────────────────────────────────────────────

class TestRequest:
    def test_header_values_in_order(self):
        request = make_request(accept="text/html;q=0.1, application/json")
        assert request.header_values("Accept") == ["text/html;q=0.1", "application/json"]

    def test_missing_header(self):
        assert make_request().header_values("Accept") == []
        assert make_request().header("Accept") is None

    def test_unprefixed_headers(self):
        request = make_request(CONTENT_TYPE="application/json")
        assert request.header("Content-Type") == "application/json"

    def test_read_body(self):
        request = make_request(
            REQUEST_METHOD="post",
            CONTENT_LENGTH="5",
            **{"wsgi.input": io.BytesIO(b"hello world")},
        )
        assert request.method == "POST"
        assert request.read() == b"hello"

    def test_buffered_writer_finish(self):
        sink = BufferedResponseWriter()
        sink.headers["Content-Type"] = "text/plain"
        sink.write_header(201)
        sink.write("created")
        captured = {}

        def start_response(status, headers):
            captured["status"] = status
            captured["headers"] = dict(headers)

        assert sink.finish(start_response) == [b"created"]
        assert captured["status"] == "201 Created"
        assert captured["headers"]["Content-Length"] == "7"
