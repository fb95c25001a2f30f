import pytest

from taskflow.errors import ForbiddenError
from taskflow.services.signature_service import authenticate_request, compute_signature, verify

BODY = b'{"event":"taskCreated","task_id":"t1","webhook_id":"wh-1"}'


def test_known_digest():
    # HMAC-SHA256("key", "The quick brown fox jumps over the lazy dog")
    assert compute_signature(b"The quick brown fox jumps over the lazy dog", "key") == (
        "f7bc83f430538424b13298e6aa6fb143ef4d59a14946175997479dbc2d1a3cd8"
    )


def test_verify_roundtrip_and_single_byte_mutation():
    sig = compute_signature(BODY, "s3cret")
    assert verify(BODY, sig, "s3cret")
    mutated = BODY.replace(b"t1", b"t2")
    assert not verify(mutated, sig, "s3cret")
    assert not verify(BODY, sig, "other")
    assert not verify(BODY, sig.upper(), "s3cret")


def test_authenticate_matches_channel(settings):
    sig = compute_signature(BODY, "s3cret")
    channel = authenticate_request(BODY, sig, "wh-1", settings.webhooks)
    assert channel.id == "wh-1"


@pytest.mark.parametrize(
    "signature,webhook_id,code",
    [
        (None, "wh-1", "MISSING_SIGNATURE"),
        ("abc", None, "MISSING_WEBHOOK_ID"),
        ("abc", "wh-unknown", "UNKNOWN_WEBHOOK"),
        ("abc", "wh-1", "INVALID_SIGNATURE"),
    ],
)
def test_authenticate_rejections(settings, signature, webhook_id, code):
    with pytest.raises(ForbiddenError) as exc_info:
        authenticate_request(BODY, signature, webhook_id, settings.webhooks)
    assert exc_info.value.code == code
    assert exc_info.value.http_status == 403


def test_no_channels_skips_verification(raw_config, caplog):
    from taskflow.config import settings_from_dict

    raw_config["webhooks"]["list"] = []
    webhooks = settings_from_dict(raw_config).webhooks
    assert authenticate_request(BODY, None, None, webhooks) is None
    assert "skipping signature verification" in caplog.text
