"""
test_transform.py — encrypt / decrypt runs at stream, file and CLI level.

Streams are kept short: the inverse divides by x1³, so rounding noise grows
where the trajectory passes close to zero.  Within the first few steps x1
stays near its starting value of 0.1 and recovery is exact.
"""
from __future__ import annotations

import io
import math

import numpy as np
import pytest
import scipy.io.wavfile as _wavfile

import sdscrypt
from sds import (
    ConfigurationError, DecodeRangeError, DegenerateStateError, FailureCode,
    HeaderError, WavHeader, decrypt_stream, decrypt_wav, encrypt_stream,
    encrypt_wav, derive_forward,
)
from sds.profiles import get_profile
from sds.recurrence import forward_step

SCENARIO = [100, -100, 32767, -32768]


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _pcm(samples) -> bytes:
    return np.asarray(samples, dtype='<i2').tobytes()


def _encrypt(samples, key: int, **kw) -> tuple[bytes, int]:
    dst = io.BytesIO()
    count = encrypt_stream(io.BytesIO(_pcm(samples)), dst, key, **kw)
    return dst.getvalue(), count


def _decrypt(data: bytes, key: int, **kw) -> tuple[list[int], int]:
    dst = io.BytesIO()
    count = decrypt_stream(io.BytesIO(data), dst, key, **kw)
    return np.frombuffer(dst.getvalue(), dtype='<i2').tolist(), count


def _write_wav(path, samples, sr: int = 8000, channels: int = 1):
    data = _pcm(samples)
    header = WavHeader.pcm16(sample_rate=sr, num_channels=channels, data_size=len(data))
    path.write_bytes(header.pack() + data)


def _reference_forward(samples, key: int) -> list[float]:
    """Straight-line forward pass with its own generator."""
    prof  = get_profile('c3_c5')
    rng   = np.random.default_rng(key)
    scale = math.sqrt(0.0004 / 0.1)
    n_prev = (-5.0 + 10.0 * rng.random()) * scale
    x1, x2 = 0.1, 0.0
    out = [x1]
    for s in samples:
        c3 = s / 32768.0 if s < 0 else s / 32767.0
        n = (-5.0 + 10.0 * rng.random()) * scale
        x1, x2 = forward_step(x1, x2, n_prev, c3, prof)
        out.append(x1)
        n_prev = n
    return out


# ─────────────────────────────────────────────────────────────────────────────
# Stream level
# ─────────────────────────────────────────────────────────────────────────────

def test_scenario_forward():
    data, count = _encrypt(SCENARIO, 7)
    values = np.frombuffer(data, dtype='<f8').tolist()
    assert count == 4
    assert len(values) == 5
    assert values[0] == 0.1
    assert values == _reference_forward(SCENARIO, 7)


def test_scenario_round_trip():
    data, _ = _encrypt(SCENARIO, 7)
    recovered, count = _decrypt(data, 7)
    assert count == 3
    assert recovered == [100, -100, 32767]


@pytest.mark.parametrize('key', [0, 1, 7, 12345, 2**40])
@pytest.mark.parametrize('samples', [
    [0, 0, 0],
    [1, -1, 2, -2],
    [32767, -32768, 32767, -32768, 0],
    [1200, -5400, 16000, -31000, 25, 7, -8, 30000],
])
def test_round_trip_drops_only_last_sample(key, samples):
    data, n_fwd = _encrypt(samples, key)
    assert len(data) == 8 * (len(samples) + 1)
    recovered, n_inv = _decrypt(data, key)
    assert n_fwd == len(samples)
    assert n_inv == len(samples) - 1
    assert recovered == samples[:-1]


def test_round_trip_c3_profile():
    samples = [500, -500, 20000, -20000, 1]
    data, _ = _encrypt(samples, 3, profile='c3')
    assert data != _encrypt(samples, 3)[0]
    recovered, _ = _decrypt(data, 3, profile='c3')
    assert recovered == samples[:-1]


def test_same_key_same_output():
    assert _encrypt(SCENARIO, 99) == _encrypt(SCENARIO, 99)


def test_different_keys_differ():
    assert _encrypt(SCENARIO, 1)[0] != _encrypt(SCENARIO, 2)[0]


def test_empty_forward_emits_leading_value_only():
    data, count = _encrypt([], 7)
    assert count == 0
    assert np.frombuffer(data, dtype='<f8').tolist() == [0.1]


@pytest.mark.parametrize('n_values', [0, 1, 2])
def test_inverse_needs_three_values(n_values):
    data = np.full(n_values, 0.1, dtype='<f8').tobytes()
    recovered, count = _decrypt(data, 7)
    assert count == 0
    assert recovered == []


@pytest.mark.parametrize('chunk', [1, 2, 3, 5])
def test_chunk_size_does_not_change_output(chunk):
    samples = [1200, -5400, 16000, -31000, 25, 7, -8, 30000]
    data, _ = _encrypt(samples, 42)
    assert _encrypt(samples, 42, chunk_samples=chunk)[0] == data
    assert _decrypt(data, 42, chunk_samples=chunk) == _decrypt(data, 42)


def test_decode_range_fault_keeps_prefix():
    data, _ = _encrypt(SCENARIO, 7)
    # a value far off the trajectory makes window 3 undecodable
    data += np.array([0.0, 0.1], dtype='<f8').tobytes()
    dst = io.BytesIO()
    with pytest.raises(DecodeRangeError) as exc:
        decrypt_stream(io.BytesIO(data), dst, 7)
    assert exc.value.index == 3
    assert np.frombuffer(dst.getvalue(), dtype='<i2').tolist() == [100, -100, 32767]


def test_zero_state_is_degenerate_fault():
    data = np.array([0.0, 0.1, 0.1], dtype='<f8').tobytes()
    dst = io.BytesIO()
    with pytest.raises(DegenerateStateError) as exc:
        decrypt_stream(io.BytesIO(data), dst, 7)
    assert exc.value.index == 0
    assert dst.getvalue() == b''


def test_partial_sample_in_stream():
    with pytest.raises(ConfigurationError):
        encrypt_stream(io.BytesIO(b'\x01\x02\x03'), io.BytesIO(), 7)


# ─────────────────────────────────────────────────────────────────────────────
# File level
# ─────────────────────────────────────────────────────────────────────────────

def test_file_round_trip(tmp_path):
    src, enc, dec = tmp_path / 'a.wav', tmp_path / 'a_enc.wav', tmp_path / 'a_dec.wav'
    samples = [1200, -5400, 16000, -31000, 25, 7, -8, 30000]
    _write_wav(src, samples)

    result = encrypt_wav(str(src), str(enc), 5)
    assert result.success and result.samples == 8
    assert enc.stat().st_size == 44 + 8 * 9

    result = decrypt_wav(str(enc), str(dec), 5)
    assert result.success and result.samples == 7
    assert result.failure is FailureCode.OK

    sr, pcm = _wavfile.read(str(dec))
    assert sr == 8000
    assert pcm.tolist() == samples[:-1]


def test_file_headers_match_data(tmp_path):
    src, enc, dec = tmp_path / 'a.wav', tmp_path / 'a_enc.wav', tmp_path / 'a_dec.wav'
    _write_wav(src, [10, 20, 30, 40], channels=2)
    encrypt_wav(str(src), str(enc), 1)
    decrypt_wav(str(enc), str(dec), 1)

    h_enc = WavHeader.unpack(enc.read_bytes())
    h_dec = WavHeader.unpack(dec.read_bytes())
    assert h_enc.subchunk2_size == enc.stat().st_size - 44 == 4 * 8 + 8
    assert h_dec.subchunk2_size == dec.stat().st_size - 44 == 8 - 2
    assert h_enc.num_channels == h_dec.num_channels == 2
    assert h_enc.chunk_size == h_enc.subchunk2_size + 36
    assert h_dec.chunk_size == h_dec.subchunk2_size + 36


def test_file_empty_data_region(tmp_path):
    src, enc, dec = tmp_path / 'e.wav', tmp_path / 'e_enc.wav', tmp_path / 'e_dec.wav'
    _write_wav(src, [])
    result = encrypt_wav(str(src), str(enc), 7)
    assert result.success and result.samples == 0
    result = decrypt_wav(str(enc), str(dec), 7)
    assert result.success and result.samples == 0
    assert dec.stat().st_size == 44


def test_file_fault_is_reported(tmp_path):
    enc, dec = tmp_path / 'bad.wav', tmp_path / 'bad_dec.wav'
    data, _ = _encrypt(SCENARIO, 7)
    data += np.array([0.0, 0.1], dtype='<f8').tobytes()
    header = derive_forward(WavHeader.pcm16(8000, 1, 12))
    enc.write_bytes(header.pack() + data)

    result = decrypt_wav(str(enc), str(dec), 7)
    assert not result.success
    assert result.failure is FailureCode.DECODE_RANGE
    assert result.index == 3
    assert result.samples == 3
    assert 'decode_range' in result.summary()
    assert dec.stat().st_size == 44 + 6


def test_missing_input_is_configuration_fault(tmp_path):
    out = tmp_path / 'out.wav'
    with pytest.raises(ConfigurationError):
        encrypt_wav(str(tmp_path / 'nope.wav'), str(out), 1)
    assert not out.exists()


def test_unsupported_format_is_header_error(tmp_path):
    from dataclasses import replace
    src, out = tmp_path / 'f.wav', tmp_path / 'out.wav'
    header = replace(WavHeader.pcm16(8000, 1, 8), bits_per_sample=8)
    src.write_bytes(header.pack() + bytes(8))
    with pytest.raises(HeaderError):
        encrypt_wav(str(src), str(out), 1)
    assert not out.exists()


def test_odd_data_region_is_configuration_fault(tmp_path):
    src, out = tmp_path / 'odd.wav', tmp_path / 'out.wav'
    src.write_bytes(WavHeader.pcm16(8000, 1, 3).pack() + b'\x00\x01\x02')
    with pytest.raises(ConfigurationError):
        encrypt_wav(str(src), str(out), 1)


@pytest.mark.parametrize('key, profile', [(-1, 'c3_c5'), (1, 'unknown')])
def test_bad_key_or_profile(tmp_path, key, profile):
    src = tmp_path / 'a.wav'
    _write_wav(src, [1, 2, 3])
    with pytest.raises(ConfigurationError):
        encrypt_wav(str(src), str(tmp_path / 'out.wav'), key, profile=profile)


def test_refuses_to_overwrite_input(tmp_path):
    src = tmp_path / 'a.wav'
    _write_wav(src, [1, 2, 3])
    with pytest.raises(ConfigurationError):
        encrypt_wav(str(src), str(src), 1)
    assert src.stat().st_size == 44 + 6


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def test_derive_output_path():
    assert sdscrypt.derive_output_path('dir/song.wav', 'encrypted') == 'dir/song (encrypted).wav'
    assert sdscrypt.derive_output_path('a.b.WAV', 'decrypted') == 'a.b (decrypted).WAV'
    with pytest.raises(ConfigurationError):
        sdscrypt.derive_output_path('song.mp3', 'encrypted')


def test_cli_roundtrip(tmp_path, capsys):
    src = tmp_path / 'tone.wav'
    samples = np.array([300, -300, 9000, -9000, 12, 0], dtype=np.int16)
    _wavfile.write(str(src), 8000, samples)

    sdscrypt.main(['roundtrip', str(src), '--key', '7'])

    enc = tmp_path / 'tone (encrypted).wav'
    dec = tmp_path / 'tone (decrypted).wav'
    assert enc.exists() and dec.exists()
    _, pcm = _wavfile.read(str(dec))
    assert pcm.tolist() == samples[:-1].tolist()

    out = capsys.readouterr()
    assert 'Number of channels: 1' in out.out
    assert 'Finished encrypting 6 samples.' in out.err
    assert 'Finished decrypting 5 samples.' in out.err


def test_cli_encrypt_decrypt_with_output(tmp_path):
    src, enc, dec = tmp_path / 's.wav', tmp_path / 'x.wav', tmp_path / 'y.wav'
    _write_wav(src, SCENARIO)
    sdscrypt.main(['encrypt', str(src), '-o', str(enc), '-k', '7'])
    sdscrypt.main(['decrypt', str(enc), '-o', str(dec), '-k', '7'])
    _, pcm = _wavfile.read(str(dec))
    assert pcm.tolist() == [100, -100, 32767]


def test_cli_info(tmp_path, capsys):
    src = tmp_path / 's.wav'
    _write_wav(src, [0] * 16000, sr=8000)
    sdscrypt.main(['info', str(src)])
    out = capsys.readouterr().out
    assert 'Sample rate: 8000' in out
    assert 'Sound duration: 00:02.00' in out


def test_cli_errors_exit_nonzero(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        sdscrypt.main(['encrypt', str(tmp_path / 'missing.wav')])
    assert exc.value.code == 1
    assert '✗ Error' in capsys.readouterr().err


def test_cli_fault_exits_nonzero(tmp_path, capsys):
    enc = tmp_path / 'bad.wav'
    data, _ = _encrypt(SCENARIO, 7)
    data += np.array([0.0, 0.1], dtype='<f8').tobytes()
    enc.write_bytes(derive_forward(WavHeader.pcm16(8000, 1, 12)).pack() + data)
    with pytest.raises(SystemExit) as exc:
        sdscrypt.main(['decrypt', str(enc), '--key', '7'])
    assert exc.value.code == 1
    assert 'FAIL:decode_range' in capsys.readouterr().err
