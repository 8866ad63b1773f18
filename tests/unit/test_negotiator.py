"""
Unit tests for the Content-Encoding negotiator.
"""

import gzip
import io
import logging

import pytest

from gzipserver.config import CompressionConfig
from gzipserver.encoding import locator as locator_module
from gzipserver.encoding.accept import NegotiationContext
from gzipserver.encoding.negotiator import Negotiator, Strategy, serve_content
from gzipserver.encoding.observer import CountingObserver, LoggingObserver
from gzipserver.encoding.resource import Resource
from gzipserver.http.response import HTTPResponse
from gzipserver.http.status_codes import HTTPStatus


class RecordingLocator:
    """Locator double that hands out a fixed sibling and remembers it."""

    def __init__(self, siblings):
        self.siblings = siblings
        self.opened = []

    def find(self, path, coding):
        data = self.siblings.get(coding)
        if data is None:
            return None
        stream = io.BytesIO(data)
        self.opened.append(stream)
        return stream


class ExplodingContentServer:
    """Content server double whose delivery always fails."""

    def serve(self, response, request, name, mod_time, stream):
        raise RuntimeError("boom")


def deny_brotli_open(path, *args, **kwargs):
    if str(path).endswith(".br"):
        raise PermissionError(13, "Permission denied", str(path))
    return open(path, *args, **kwargs)


def serve(negotiator, resource, request, response=None):
    response = response if response is not None else HTTPResponse()
    strategy = negotiator.serve(resource, request, response)
    return strategy, response


def open_static(static_dir, name, **kwargs) -> Resource:
    return Resource.open(static_dir / name, name=name, **kwargs)


class TestPassThrough:
    """An encoding set upstream is never touched."""

    def test_existing_encoding_passes_through(self, negotiator, observer, make_request, compressible):
        response = HTTPResponse(headers={"Content-Encoding": "gzip"})
        resource = Resource.from_bytes("style.css", compressible)

        strategy, response = serve(negotiator, resource, make_request("br, gzip"), response)

        assert strategy is Strategy.PASS_THROUGH
        assert response.body == compressible
        assert response.headers["Content-Encoding"] == "gzip"
        assert observer.compressions == 0

    def test_pass_through_beats_siblings(self, negotiator, observer, make_request, static_dir):
        response = HTTPResponse(headers={"Content-Encoding": "identity"})

        with open_static(static_dir, "style.css") as resource:
            strategy, response = serve(negotiator, resource, make_request("br, gzip"), response)

        assert strategy is Strategy.PASS_THROUGH
        assert response.headers["Content-Encoding"] == "identity"
        assert not observer.sibling_lookups

    def test_empty_encoding_still_passes_through(self, negotiator, make_request, compressible):
        response = HTTPResponse(headers={"Content-Encoding": ""})
        resource = Resource.from_bytes("style.css", compressible)

        strategy, _ = serve(negotiator, resource, make_request("gzip"), response)

        assert strategy is Strategy.PASS_THROUGH


class TestSiblings:
    """Precompressed .br / .gz files next to the original."""

    def test_brotli_sibling(self, negotiator, make_request, static_dir):
        with open_static(static_dir, "style.css") as resource:
            strategy, response = serve(negotiator, resource, make_request("br, gzip"))

        assert strategy is Strategy.PRECOMPRESSED_BROTLI
        assert response.status == HTTPStatus.OK
        assert response.body == b"BROTLI-BYTES-FOR-STYLE"
        assert response.headers["Content-Encoding"] == "br"
        assert response.headers["Content-Type"] == "text/css; charset=utf-8"
        assert response.headers["Vary"] == "br, gzip"
        assert response.headers["Content-Length"] == str(len(b"BROTLI-BYTES-FOR-STYLE"))

    def test_gzip_sibling_when_brotli_not_accepted(self, negotiator, observer, make_request, static_dir, compressible):
        with open_static(static_dir, "style.css") as resource:
            strategy, response = serve(negotiator, resource, make_request("gzip"))

        assert strategy is Strategy.PRECOMPRESSED_GZIP
        assert response.headers["Content-Encoding"] == "gzip"
        assert response.headers["Vary"] == "gzip"
        assert gzip.decompress(response.body) == compressible
        assert observer.compressions == 0

    def test_gzip_sibling_when_brotli_sibling_missing(self, negotiator, observer, make_request, static_dir):
        with open_static(static_dir, "app.js") as resource:
            strategy, response = serve(negotiator, resource, make_request("br, gzip"))

        assert strategy is Strategy.PRECOMPRESSED_GZIP
        assert response.body == b"GZIP-SIBLING-FOR-APP"
        assert observer.sibling_lookups[("br", False)] == 1
        assert observer.sibling_lookups[("gzip", True)] == 1

    def test_brotli_refused_with_q_zero(self, negotiator, make_request, static_dir):
        with open_static(static_dir, "style.css") as resource:
            strategy, response = serve(negotiator, resource, make_request("br;q=0, gzip"))

        assert strategy is Strategy.PRECOMPRESSED_GZIP
        assert response.headers["Content-Encoding"] == "gzip"

    def test_brotli_sibling_without_gzip(self, negotiator, make_request, static_dir):
        """A Brotli-only client still gets the .br file."""
        with open_static(static_dir, "style.css") as resource:
            strategy, response = serve(negotiator, resource, make_request("br"))

        assert strategy is Strategy.PRECOMPRESSED_BROTLI
        assert response.headers["Content-Encoding"] == "br"

    def test_vary_appends_to_existing(self, negotiator, make_request, static_dir):
        response = HTTPResponse(headers={"Vary": "Origin"})

        with open_static(static_dir, "style.css") as resource:
            serve(negotiator, resource, make_request("br, gzip"), response)

        assert response.headers["Vary"] == "Origin, br, gzip"

    def test_sibling_beats_not_worth_marker(self, negotiator, make_request, static_dir):
        resource = Resource(
            name="style.css",
            stream=io.BytesIO(b"original"),
            path=str(static_dir / "style.css"),
            not_worth_compressing=True,
        )

        strategy, response = serve(negotiator, resource, make_request("gzip"))

        assert strategy is Strategy.PRECOMPRESSED_GZIP
        assert response.headers["Content-Encoding"] == "gzip"

    def test_sibling_is_closed(self, make_request):
        locator = RecordingLocator({"br": b"brotli"})
        negotiator = Negotiator(locator=locator, observer=CountingObserver())
        resource = Resource(name="a.js", stream=io.BytesIO(b"x"), path="/srv/a.js")

        strategy, _ = serve(negotiator, resource, make_request("br"))

        assert strategy is Strategy.PRECOMPRESSED_BROTLI
        assert len(locator.opened) == 1
        assert locator.opened[0].closed

    def test_sibling_closed_when_delivery_fails(self, make_request):
        locator = RecordingLocator({"br": b"brotli"})
        negotiator = Negotiator(
            locator=locator,
            content_server=ExplodingContentServer(),
            observer=CountingObserver(),
        )
        resource = Resource(name="a.js", stream=io.BytesIO(b"x"), path="/srv/a.js")

        with pytest.raises(RuntimeError, match="boom"):
            serve(negotiator, resource, make_request("br"))

        assert len(locator.opened) == 1
        assert locator.opened[0].closed

    def test_unopenable_sibling_is_skipped(self, negotiator, observer, make_request, static_dir, monkeypatch):
        """A .br file that exists but cannot be opened counts as missing."""
        monkeypatch.setattr(locator_module, "open", deny_brotli_open, raising=False)

        with open_static(static_dir, "style.css") as resource:
            strategy, response = serve(negotiator, resource, make_request("br, gzip"))

        assert strategy is Strategy.PRECOMPRESSED_GZIP
        assert response.headers["Content-Encoding"] == "gzip"
        assert observer.sibling_lookups[("br", False)] == 1

    def test_extensionless_sibling_type_sniffed_from_sibling(self, negotiator, make_request, tmp_path):
        """Without an extension the type comes from the encoded sibling bytes."""
        (tmp_path / "LICENSE").write_bytes(b"plain text " * 100)
        (tmp_path / "LICENSE.gz").write_bytes(gzip.compress(b"plain text " * 100))

        with Resource.open(tmp_path / "LICENSE") as resource:
            strategy, response = serve(negotiator, resource, make_request("gzip"))

        assert strategy is Strategy.PRECOMPRESSED_GZIP
        assert response.headers["Content-Type"] == "application/x-gzip"

    def test_in_memory_resource_has_no_siblings(self, negotiator, observer, make_request, compressible):
        resource = Resource.from_bytes("style.css", compressible)

        strategy, _ = serve(negotiator, resource, make_request("br, gzip"))

        assert strategy is Strategy.COMPRESSED
        assert not observer.sibling_lookups

    def test_siblings_disabled(self, observer, make_request, static_dir):
        negotiator = Negotiator(CompressionConfig(serve_precompressed=False), observer=observer)

        with open_static(static_dir, "style.css") as resource:
            strategy, response = serve(negotiator, resource, make_request("br, gzip"))

        assert strategy is Strategy.COMPRESSED
        assert response.headers["Content-Encoding"] == "gzip"

    def test_head_request(self, negotiator, make_request, static_dir):
        with open_static(static_dir, "style.css") as resource:
            strategy, response = serve(negotiator, resource, make_request("br", method="HEAD"))

        assert strategy is Strategy.PRECOMPRESSED_BROTLI
        assert response.body == b""
        assert response.headers["Content-Length"] == str(len(b"BROTLI-BYTES-FOR-STYLE"))


class TestIdentity:
    """Cases where the original bytes go out unencoded."""

    @pytest.mark.parametrize("accept", [None, "", "br", "gzip;q=0", "deflate, *"])
    def test_gzip_not_accepted(self, negotiator, observer, make_request, compressible, accept):
        resource = Resource.from_bytes("style.css", compressible)

        strategy, response = serve(negotiator, resource, make_request(accept))

        assert strategy is Strategy.GZIP_NOT_ACCEPTED
        assert response.body == compressible
        assert not response.has_header("Content-Encoding")
        assert observer.compressions == 0

    def test_precomputed_bytes_unused_without_gzip(self, negotiator, make_request, compressible):
        resource = Resource.from_bytes("style.css", compressible, gzip_bytes=b"PRECOMPUTED")

        strategy, response = serve(negotiator, resource, make_request())

        assert strategy is Strategy.GZIP_NOT_ACCEPTED
        assert response.body == compressible

    def test_not_worth_compressing_marker(self, negotiator, observer, make_request, compressible):
        resource = Resource.from_bytes("style.css", compressible, not_worth_compressing=True)

        strategy, response = serve(negotiator, resource, make_request("gzip"))

        assert strategy is Strategy.NOT_WORTH_COMPRESSING
        assert response.body == compressible
        assert not response.has_header("Content-Encoding")
        assert observer.compressions == 0

    def test_incompressible_served_as_is(self, negotiator, observer, make_request, incompressible):
        resource = Resource.from_bytes("blob.bin", incompressible)

        strategy, response = serve(negotiator, resource, make_request("gzip"))

        assert strategy is Strategy.UNCOMPRESSED
        assert response.status == HTTPStatus.OK
        assert response.body == incompressible
        assert not response.has_header("Content-Encoding")
        assert observer.compressions == 1

    def test_compression_failure_falls_back(self, negotiator, observer, make_request, compressible, failing_stream):
        resource = Resource("style.css", failing_stream(compressible, fail_at=0, failures=1))

        strategy, response = serve(negotiator, resource, make_request("gzip"))

        assert strategy is Strategy.UNCOMPRESSED
        assert response.status == HTTPStatus.OK
        assert response.body == compressible
        assert not response.has_header("Content-Encoding")
        assert observer.compressions == 1


class TestGzip:
    """Precomputed and on-the-fly gzip."""

    def test_precomputed_gzip(self, negotiator, observer, make_request, compressible):
        precomputed = gzip.compress(compressible)
        resource = Resource.from_bytes("style.css", compressible, gzip_bytes=precomputed)

        strategy, response = serve(negotiator, resource, make_request("gzip"))

        assert strategy is Strategy.PRECOMPUTED_GZIP
        assert response.body == precomputed
        assert response.headers["Content-Encoding"] == "gzip"
        assert response.headers["Content-Type"] == "text/css; charset=utf-8"
        assert observer.compressions == 0

    def test_on_the_fly(self, negotiator, observer, make_request, compressible):
        resource = Resource.from_bytes("style.css", compressible)

        strategy, response = serve(negotiator, resource, make_request("gzip, deflate"))

        assert strategy is Strategy.COMPRESSED
        assert response.headers["Content-Encoding"] == "gzip"
        assert response.headers["Content-Type"] == "text/css; charset=utf-8"
        assert response.headers["Content-Length"] == str(len(response.body))
        assert len(response.body) < len(compressible)
        assert gzip.decompress(response.body) == compressible
        assert observer.compressions == 1

    def test_x_gzip_accepted(self, negotiator, make_request, compressible):
        resource = Resource.from_bytes("style.css", compressible)

        strategy, response = serve(negotiator, resource, make_request("x-gzip"))

        assert strategy is Strategy.COMPRESSED
        assert response.headers["Content-Encoding"] == "gzip"

    def test_type_sniffed_from_original(self, negotiator, make_request):
        """The type comes from the original bytes, not the gzip output."""
        data = b"<html><body>" + b"<p>hello</p>" * 500 + b"</body></html>"
        resource = Resource.from_bytes("index", data)

        strategy, response = serve(negotiator, resource, make_request("gzip"))

        assert strategy is Strategy.COMPRESSED
        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert gzip.decompress(response.body) == data

    def test_existing_content_type_kept(self, negotiator, make_request, compressible):
        response = HTTPResponse(headers={"Content-Type": "application/x-custom"})
        resource = Resource.from_bytes("style.css", compressible)

        serve(negotiator, resource, make_request("gzip"), response)

        assert response.headers["Content-Type"] == "application/x-custom"

    def test_no_vary_on_generated_encodings(self, negotiator, make_request, compressible):
        resource = Resource.from_bytes("style.css", compressible)

        _, response = serve(negotiator, resource, make_request("gzip"))

        assert not response.has_header("Vary")

    def test_on_the_fly_head(self, negotiator, make_request, compressible):
        resource = Resource.from_bytes("style.css", compressible)

        _, response = serve(negotiator, resource, make_request("gzip", method="HEAD"))

        assert response.body == b""
        assert int(response.headers["Content-Length"]) < len(compressible)


class TestSeekFailure:
    """A stream that cannot rewind after sniffing fails the request."""

    def test_unseekable_unknown_type(self, negotiator, observer, make_request, unseekable):
        resource = Resource("README", unseekable(b"hello world " * 100))

        strategy, response = serve(negotiator, resource, make_request("gzip"))

        assert strategy is Strategy.SEEK_FAILED
        assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
        assert b"seeker can't seek" in response.body
        assert not response.has_header("Content-Encoding")
        assert observer.strategies[Strategy.SEEK_FAILED] == 1
        assert observer.compressions == 0


class TestInvariants:
    """Properties that hold for every request."""

    @pytest.mark.parametrize("accept", [None, "gzip", "br", "br, gzip", "gzip;q=0, br;q=0"])
    @pytest.mark.parametrize("name", ["style.css", "app.js", "page.html", "logo.png"])
    def test_single_content_encoding(self, negotiator, make_request, static_dir, accept, name):
        with open_static(static_dir, name) as resource:
            strategy, response = serve(negotiator, resource, make_request(accept))

        encodings = [key for key in response.headers if key.lower() == "content-encoding"]
        assert len(encodings) <= 1
        assert response.get_header("Content-Encoding") == (strategy.content_encoding or "")
        assert response.committed

    def test_explicit_context(self, negotiator, make_request, compressible):
        """A supplied context overrides what the request says."""
        resource = Resource.from_bytes("style.css", compressible)
        context = NegotiationContext.from_header("gzip")
        response = HTTPResponse()

        strategy = negotiator.serve(resource, make_request(), response, context)

        assert strategy is Strategy.COMPRESSED

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError):
            Negotiator(CompressionConfig(compression_level=0))

    def test_strategy_encodings(self):
        assert Strategy.PRECOMPRESSED_BROTLI.content_encoding == "br"
        assert Strategy.COMPRESSED.content_encoding == "gzip"
        assert Strategy.UNCOMPRESSED.content_encoding is None


class TestServeContent:
    """Tests for the serve_content() entry point."""

    def test_default_negotiator(self, make_request, compressible):
        response = HTTPResponse()

        strategy = serve_content(response, make_request("gzip"), Resource.from_bytes("a.css", compressible))

        assert strategy is Strategy.COMPRESSED
        assert gzip.decompress(response.body) == compressible

    def test_shared_negotiator(self, negotiator, observer, make_request, compressible):
        for _ in range(3):
            serve_content(HTTPResponse(), make_request("gzip"), Resource.from_bytes("a.css", compressible), negotiator)

        assert observer.strategies[Strategy.COMPRESSED] == 3


class TestLogging:
    """Decisions are visible in the logs."""

    def test_logging_observer(self, make_request, compressible, caplog):
        negotiator = Negotiator(observer=LoggingObserver())
        caplog.set_level(logging.DEBUG, logger="gzipserver.negotiation")

        serve(negotiator, Resource.from_bytes("style.css", compressible), make_request("gzip"))

        assert "style.css: strategy compressed" in caplog.text
        assert "(worthwhile)" in caplog.text

    def test_compression_failure_warns(self, make_request, compressible, failing_stream, caplog):
        negotiator = Negotiator(observer=LoggingObserver())
        caplog.set_level(logging.WARNING, logger="gzipserver.negotiation")

        serve(negotiator, Resource("style.css", failing_stream(compressible)), make_request("gzip"))

        assert "gzip compression failed" in caplog.text
