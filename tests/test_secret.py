import pytest

from conftest import RFC_SECRET
from quart_twofactor import (
    FernetEncrypter,
    InsufficientEntropy,
    InvalidSecretEncoding,
    SecretCodec,
    SecretDecryptionFailed,
)
from quart_twofactor.errors import DecryptError
from quart_twofactor.secret import decode, encode, generate_random_secret


def _tamper(token: str) -> str:
    middle = len(token) // 2
    replacement = "A" if token[middle] != "A" else "B"
    return token[:middle] + replacement + token[middle + 1 :]


def test_encode_is_uppercase_without_padding():
    assert encode(b"Hello!\xde\xad\xbe\xef") == "JBSWY3DPEHPK3PXP"
    assert encode(b"abc") == "MFRGG"


@pytest.mark.parametrize("text", [RFC_SECRET, "JBSWY3DPEHPK3PXP", "MFRGG"])
def test_decode_then_encode_round_trips(text):
    assert encode(decode(text)) == text


def test_decode_accepts_lowercase_and_padding():
    assert decode("mfrgg") == b"abc"
    assert decode("MFRGG===") == b"abc"


@pytest.mark.parametrize("text", ["", "====", "NOT-BASE32!", "ABC1", None])
def test_decode_rejects_malformed_input(text):
    with pytest.raises(InvalidSecretEncoding):
        decode(text)


def test_generate_random_secret_has_requested_length():
    secret = generate_random_secret(20)
    assert len(decode(secret)) == 20
    assert secret == secret.upper()
    assert generate_random_secret(20) != secret


def test_generate_random_secret_refuses_broken_source():
    def broken(length):
        raise OSError("no entropy")

    with pytest.raises(InsufficientEntropy):
        generate_random_secret(20, random_bytes=broken)

    with pytest.raises(InsufficientEntropy):
        generate_random_secret(20, random_bytes=lambda length: b"\x00" * (length - 1))


def test_plain_codec_stores_canonical_text():
    codec = SecretCodec()
    assert codec.dump("jbswy3dpehpk3pxp", encrypted=False) == "JBSWY3DPEHPK3PXP"
    assert codec.load("JBSWY3DPEHPK3PXP", encrypted=False) == "JBSWY3DPEHPK3PXP"


def test_encrypted_codec_round_trips(encrypter):
    codec = SecretCodec(encrypter)
    stored = codec.dump(RFC_SECRET, encrypted=True)

    assert stored != RFC_SECRET
    assert encrypter.decrypt(stored) == b"12345678901234567890"
    assert codec.load(stored, encrypted=True) == RFC_SECRET


def test_encrypted_codec_rejects_tampered_ciphertext(encrypter):
    codec = SecretCodec(encrypter)
    stored = codec.dump(RFC_SECRET, encrypted=True)

    with pytest.raises(SecretDecryptionFailed):
        codec.load(_tamper(stored), encrypted=True)


def test_encrypted_codec_rejects_wrong_key(encrypter):
    stored = SecretCodec(encrypter).dump(RFC_SECRET, encrypted=True)
    other = SecretCodec(FernetEncrypter(FernetEncrypter.generate_key()))

    with pytest.raises(SecretDecryptionFailed):
        other.load(stored, encrypted=True)


def test_encrypted_codec_requires_encrypter():
    with pytest.raises(RuntimeError):
        SecretCodec().dump(RFC_SECRET, encrypted=True)


def test_fernet_encrypter_wraps_invalid_token(encrypter):
    with pytest.raises(DecryptError):
        encrypter.decrypt("not-a-token")
