# tests/services/test_envelope.py
import base64
from dataclasses import replace

import pytest

from cipherchat.core.settings import settings
from cipherchat.services.envelope import (
    WIRE_ALGORITHM,
    WIRE_ENCRYPTED_DATA,
    WIRE_ENCRYPTED_KEY,
    WIRE_IV,
    EnvelopeCodec,
    SealedEnvelope,
)
from cipherchat.services.errors import DecryptionError, UnwrapError
from cipherchat.services.symmetric import AES_256_CBC, AES_256_GCM
from cipherchat.services.wrapping import AsymmetricWrapper


@pytest.fixture
def codec():
    return EnvelopeCodec()


@pytest.mark.parametrize("plaintext", ["", "hi", "ünïcødé ✓ 🔐"])
def test_open_recovers_sealed_message(codec, key_pair, plaintext):
    envelope = codec.seal(plaintext, key_pair.public_key)

    assert codec.open(envelope, key_pair.private_key) == plaintext


def test_sealing_same_text_twice_differs_everywhere(codec, key_pair):
    first = codec.seal("same", key_pair.public_key)
    second = codec.seal("same", key_pair.public_key)

    assert first.cipher_text != second.cipher_text
    assert first.wrapped_key != second.wrapped_key
    assert first.iv != second.iv


def test_other_private_key_cannot_open(codec, key_pair, other_key_pair):
    envelope = codec.seal("for key_pair only", key_pair.public_key)

    with pytest.raises(UnwrapError):
        codec.open(envelope, other_key_pair.private_key)


def test_tampered_gcm_body_is_rejected(codec, key_pair):
    envelope = codec.seal("pay 10", key_pair.public_key)
    tampered = replace(envelope, cipher_text=bytes([envelope.cipher_text[0] ^ 0x80]) + envelope.cipher_text[1:])

    with pytest.raises(DecryptionError):
        codec.open(tampered, key_pair.private_key)


def test_tampered_cbc_body_never_opens_to_original(key_pair):
    codec = EnvelopeCodec(algorithm=AES_256_CBC)
    envelope = codec.seal("pay 10 to carol", key_pair.public_key)
    tampered = replace(envelope, cipher_text=bytes([envelope.cipher_text[0] ^ 0x80]) + envelope.cipher_text[1:])

    try:
        result = codec.open(tampered, key_pair.private_key)
    except DecryptionError:
        return
    assert result != "pay 10 to carol"


def test_open_follows_envelope_algorithm(key_pair):
    cbc_envelope = EnvelopeCodec(algorithm=AES_256_CBC).seal("legacy", key_pair.public_key)

    assert EnvelopeCodec(algorithm=AES_256_GCM).open(cbc_envelope, key_pair.private_key) == "legacy"


def test_wrapped_key_of_wrong_length_is_rejected(codec, key_pair):
    envelope = codec.seal("hello", key_pair.public_key)
    short_key = AsymmetricWrapper().wrap_key(b"k" * 16, key_pair.public_key)

    with pytest.raises(DecryptionError):
        codec.open(replace(envelope, wrapped_key=short_key), key_pair.private_key)


def test_wire_encoding_round_trips(codec, key_pair):
    envelope = codec.seal("wire me", key_pair.public_key)

    wire = envelope.to_wire()

    assert wire[WIRE_IV] == envelope.iv.hex()
    assert len(wire[WIRE_IV]) == 32
    assert base64.b64decode(wire[WIRE_ENCRYPTED_DATA]) == envelope.cipher_text
    assert base64.b64decode(wire[WIRE_ENCRYPTED_KEY]) == envelope.wrapped_key
    assert wire[WIRE_ALGORITHM] == AES_256_GCM
    assert SealedEnvelope.from_wire(wire) == envelope


def test_from_wire_defaults_missing_algorithm(codec, key_pair):
    wire = codec.seal("x", key_pair.public_key).to_wire()
    del wire[WIRE_ALGORITHM]

    assert SealedEnvelope.from_wire(wire).algorithm == settings.cipher_algorithm


@pytest.mark.parametrize(
    "field,value",
    [
        (WIRE_ENCRYPTED_DATA, "***not base64***"),
        (WIRE_ENCRYPTED_KEY, "%%%"),
        (WIRE_IV, "zz" * 16),
        (WIRE_IV, "ab" * 8),
        (WIRE_ALGORITHM, "rot13"),
    ],
)
def test_from_wire_rejects_malformed_fields(codec, key_pair, field, value):
    wire = codec.seal("x", key_pair.public_key).to_wire()
    wire[field] = value

    with pytest.raises(DecryptionError):
        SealedEnvelope.from_wire(wire)


def test_from_wire_rejects_missing_fields():
    with pytest.raises(DecryptionError):
        SealedEnvelope.from_wire({WIRE_IV: "00" * 16})


def test_open_rejects_unsupported_algorithm(codec, key_pair):
    envelope = replace(codec.seal("hi", key_pair.public_key), algorithm="rot13")

    with pytest.raises(DecryptionError):
        codec.open(envelope, key_pair.private_key)
