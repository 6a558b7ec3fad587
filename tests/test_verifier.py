"""Tests for RequestVerifier."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from skill_verifier import RequestVerifier, SkillSettings
from skill_verifier.certificates import TrustStore

from .conftest import CERT_URL, skill_body, to_pem


@pytest.fixture
def verifier(platform):
    return RequestVerifier(trust_store=platform.trust_store())


class TestRequestVerifier:
    """Tests for RequestVerifier."""

    @pytest.mark.asyncio
    async def test_verify_success(self, mock_cert_host, platform, verifier):
        """A correctly signed request passes every stage."""
        mock_cert_host.get(CERT_URL).respond(content=platform.bundle())
        body = skill_body()

        result = await verifier.verify(platform.headers(body), body)

        assert result.verified is True
        assert result.bypassed is False
        assert result.reason is None
        assert result.cert_url == CERT_URL

    @pytest.mark.asyncio
    async def test_verify_is_repeatable(self, mock_cert_host, platform, verifier):
        """The same request verifies twice; nothing is single-use or cached."""
        route = mock_cert_host.get(CERT_URL).respond(content=platform.bundle())
        body = skill_body()
        headers = platform.headers(body)

        first = await verifier.verify(headers, body)
        second = await verifier.verify(headers, body)

        assert first.verified and second.verified
        assert route.call_count == 2

    @pytest.mark.asyncio
    async def test_lowercase_headers(self, mock_cert_host, platform, verifier):
        mock_cert_host.get(CERT_URL).respond(content=platform.bundle())
        body = skill_body()
        headers = {k.lower(): v for k, v in platform.headers(body).items()}

        result = await verifier.verify(headers, body)

        assert result.verified is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", ["Signature", "SignatureCertChainUrl"])
    async def test_missing_header(self, mock_cert_host, platform, verifier, missing):
        """Missing headers fail before any network call."""
        body = skill_body()
        headers = platform.headers(body)
        del headers[missing]

        result = await verifier.verify(headers, body)

        assert result.verified is False
        assert result.reason == "missing_header"
        assert missing in result.error
        assert mock_cert_host.calls.call_count == 0

    @pytest.mark.asyncio
    async def test_invalid_origin_not_fetched(self, mock_cert_host, platform, verifier):
        """Untrusted chain URLs are never fetched."""
        evil = mock_cert_host.get("http://evil.com/echo.api/cert.pem").respond(
            content=platform.bundle()
        )
        body = skill_body()

        result = await verifier.verify(
            platform.headers(body, cert_url="http://evil.com/echo.api/cert.pem"), body
        )

        assert result.verified is False
        assert result.reason == "invalid_origin"
        assert not evil.called

    @pytest.mark.asyncio
    async def test_fetch_failure(self, mock_cert_host, platform, verifier):
        mock_cert_host.get(CERT_URL).mock(side_effect=httpx.ConnectError("refused"))
        body = skill_body()

        result = await verifier.verify(platform.headers(body), body)

        assert result.verified is False
        assert result.reason == "fetch_failed"
        assert result.cert_url == CERT_URL

    @pytest.mark.asyncio
    async def test_parse_failure(self, mock_cert_host, platform, verifier):
        mock_cert_host.get(CERT_URL).respond(content=b"<Error>AccessDenied</Error>")
        body = skill_body()

        result = await verifier.verify(platform.headers(body), body)

        assert result.reason == "parse_failed"

    @pytest.mark.asyncio
    async def test_expired_certificate(self, mock_cert_host, platform, verifier):
        mock_cert_host.get(CERT_URL).respond(content=platform.bundle())
        body = skill_body()
        later = datetime.now(timezone.utc) + timedelta(days=365)

        result = await verifier.verify(platform.headers(body), body, now=later)

        assert result.reason == "certificate_expired"

    @pytest.mark.asyncio
    async def test_untrusted_chain(self, mock_cert_host, platform):
        mock_cert_host.get(CERT_URL).respond(content=platform.bundle())
        verifier = RequestVerifier(trust_store=TrustStore([]))
        body = skill_body()

        result = await verifier.verify(platform.headers(body), body)

        assert result.reason == "chain_untrusted"

    @pytest.mark.asyncio
    async def test_tampered_body(self, mock_cert_host, platform, verifier):
        mock_cert_host.get(CERT_URL).respond(content=platform.bundle())
        body = skill_body()
        headers = platform.headers(body)

        result = await verifier.verify(headers, skill_body(intent="AMAZON.StopIntent"))

        assert result.verified is False
        assert result.reason == "signature_mismatch"

    @pytest.mark.asyncio
    async def test_bad_signature_encoding(self, mock_cert_host, platform, verifier):
        mock_cert_host.get(CERT_URL).respond(content=platform.bundle())
        body = skill_body()
        headers = platform.headers(body)
        headers["Signature"] = "not-base64!"

        result = await verifier.verify(headers, body)

        assert result.reason == "signature_decode"

    @pytest.mark.asyncio
    async def test_bypass(self, mock_cert_host, platform):
        """Bypass passes without looking at headers or the network."""
        verifier = RequestVerifier(trust_store=platform.trust_store(), bypass=True)

        result = await verifier.verify({}, b"")

        assert result.verified is True
        assert result.bypassed is True
        assert mock_cert_host.calls.call_count == 0

    def test_verify_sync_success(self, mock_cert_host, platform, verifier):
        """Synchronous verification works."""
        mock_cert_host.get(CERT_URL).respond(content=platform.bundle())
        body = skill_body()

        result = verifier.verify_sync(platform.headers(body), body)

        assert result.verified is True

    def test_verify_sync_failure(self, mock_cert_host, platform, verifier):
        mock_cert_host.get(CERT_URL).respond(status_code=403)
        body = skill_body()

        result = verifier.verify_sync(platform.headers(body), body)

        assert result.verified is False
        assert result.reason == "fetch_failed"


class TestFromSettings:
    """Tests for building a verifier from configuration."""

    def test_bypass_ignored_in_production(self, platform, tmp_path):
        store = tmp_path / "anchors.pem"
        store.write_bytes(to_pem(platform.root))
        settings = SkillSettings(skip_verification=True, trust_store_path=str(store))

        verifier = RequestVerifier.from_settings(settings)

        assert verifier.bypass is False

    def test_bypass_outside_production(self, tmp_path, platform):
        store = tmp_path / "anchors.pem"
        store.write_bytes(to_pem(platform.root))
        settings = SkillSettings(
            environment="development",
            skip_verification=True,
            trust_store_path=str(store),
        )

        verifier = RequestVerifier.from_settings(settings)

        assert verifier.bypass is True

    def test_settings_applied(self, tmp_path, platform):
        store = tmp_path / "anchors.pem"
        store.write_bytes(to_pem(platform.root))
        settings = SkillSettings(
            cert_host="certs.example.com",
            cert_path_prefix="/skill/",
            cert_subject="CN=skill-signer.example.com",
            fetch_timeout_s=3.0,
            trust_store_path=str(store),
        )

        verifier = RequestVerifier.from_settings(settings)

        assert verifier.cert_host == "certs.example.com"
        assert verifier.cert_path_prefix == "/skill/"
        assert verifier.validator.subject == "CN=skill-signer.example.com"
        assert verifier.fetcher.timeout_s == 3.0
        assert verifier.validator.trust_store.is_anchor(platform.root)
