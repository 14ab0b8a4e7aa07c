#!/usr/bin/env python3
"""
sdscrypt.py — SDS sound encryption CLI entry point.

Commands:
  info      <wav>   Print the WAV header and duration
  encrypt   <wav>   Encrypt 16-bit PCM audio → "<name> (encrypted).wav"
  decrypt   <wav>   Decrypt an encrypted file → "<name> (decrypted).wav"
  roundtrip <wav>   Encrypt, then decrypt the result (both files are kept)

Run `python3 sdscrypt.py --help` for full usage.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from sds import ConfigurationError, TransformResult, decrypt_wav, encrypt_wav
from sds.header import read_header
from sds.profiles import DEFAULT_KEY, DEFAULT_PROFILE, PROFILES

_WAV = '.wav'


# ─────────────────────────────────────────────────────────────────────────────
# Output naming
# ─────────────────────────────────────────────────────────────────────────────

def derive_output_path(path: str, tag: str) -> str:
    """'song.wav' + 'encrypted' → 'song (encrypted).wav' (same directory)."""
    p = Path(path)
    if p.suffix.lower() != _WAV:
        raise ConfigurationError(f'Please supply a .wav file, got: {path}')
    return str(p.with_name(f'{p.stem} ({tag}){p.suffix}'))


# ─────────────────────────────────────────────────────────────────────────────
# Reporting
# ─────────────────────────────────────────────────────────────────────────────

def _print_info(path: str):
    header = read_header(path)
    print(f'File name: {path}')
    for line in header.describe():
        print(line)


def _report(result: TransformResult, out_path: str) -> bool:
    if result.success:
        verb = 'encrypting' if result.direction == 'encrypt' else 'decrypting'
        print(f'Finished {verb} {result.samples} samples.', file=sys.stderr)
        size_kb = os.path.getsize(out_path) / 1024
        print(f'✓ Saved: {out_path}  ({size_kb:.1f} KB, {result.samples} samples)')
        return True
    print(f'✗ {result.summary()}', file=sys.stderr)
    if result.message:
        print(f'  {result.message}', file=sys.stderr)
    print(f'  Partial output left at: {out_path}', file=sys.stderr)
    return False


# ─────────────────────────────────────────────────────────────────────────────
# Sub-command handlers
# ─────────────────────────────────────────────────────────────────────────────

def cmd_info(args: argparse.Namespace):
    _print_info(args.audio)


def cmd_encrypt(args: argparse.Namespace):
    out_path = args.output or derive_output_path(args.audio, 'encrypted')
    print(f'→ Encrypt  {args.audio} → {out_path}  key={args.key}  '
          f'profile={args.profile}', file=sys.stderr)
    result = encrypt_wav(args.audio, out_path, args.key, profile=args.profile)
    if not _report(result, out_path):
        sys.exit(1)


def cmd_decrypt(args: argparse.Namespace):
    out_path = args.output or derive_output_path(args.audio, 'decrypted')
    print(f'→ Decrypt  {args.audio} → {out_path}  key={args.key}  '
          f'profile={args.profile}', file=sys.stderr)
    result = decrypt_wav(args.audio, out_path, args.key, profile=args.profile)
    if not _report(result, out_path):
        sys.exit(1)


def cmd_roundtrip(args: argparse.Namespace):
    enc_path = derive_output_path(args.audio, 'encrypted')
    dec_path = derive_output_path(args.audio, 'decrypted')

    _print_info(args.audio)
    print()

    result = encrypt_wav(args.audio, enc_path, args.key, profile=args.profile)
    if not _report(result, enc_path):
        sys.exit(1)

    result = decrypt_wav(enc_path, dec_path, args.key, profile=args.profile)
    if not _report(result, dec_path):
        sys.exit(1)


# ─────────────────────────────────────────────────────────────────────────────
# Argument parser
# ─────────────────────────────────────────────────────────────────────────────

def _add_key_args(p: argparse.ArgumentParser):
    p.add_argument('--key', '-k', type=int, default=DEFAULT_KEY,
                   metavar='N',
                   help=f'Integer key, same value for encrypt and decrypt '
                        f'(default: {DEFAULT_KEY})')
    p.add_argument('--profile', default=DEFAULT_PROFILE,
                   choices=list(PROFILES),
                   help=f'SDS parameter set (default: {DEFAULT_PROFILE})')


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog='sdscrypt',
        description='SDS sound encryption — scramble 16-bit PCM WAV files '
                    'through a keyed stochastic differential system.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 sdscrypt.py info song.wav
  python3 sdscrypt.py encrypt song.wav --key 42          # → song (encrypted).wav
  python3 sdscrypt.py decrypt "song (encrypted).wav" --key 42 -o restored.wav
  python3 sdscrypt.py roundtrip song.wav                 # key 1, both files
""",
    )
    p.add_argument('--verbose', '-v', action='store_true',
                   help='Log debug records from the sds package to stderr')
    sub = p.add_subparsers(dest='command', metavar='<command>')
    sub.required = True

    # ── info ──────────────────────────────────────────────────────────────────
    inf = sub.add_parser('info', help='Print WAV header fields and duration.')
    inf.add_argument('audio', help='Input WAV file')
    inf.set_defaults(func=cmd_info)

    # ── encrypt ───────────────────────────────────────────────────────────────
    enc = sub.add_parser(
        'encrypt',
        help='Encrypt a 16-bit PCM WAV file.',
        description=(
            'Drives every sample through the SDS recurrence. The output is '
            'about four times larger and still opens as (noisy) PCM audio.'
        ),
    )
    enc.add_argument('audio', help='Input WAV file (16-bit PCM, mono or stereo)')
    enc.add_argument('--output', '-o', default=None,
                     help='Output path (default: "<name> (encrypted).wav")')
    _add_key_args(enc)
    enc.set_defaults(func=cmd_encrypt)

    # ── decrypt ───────────────────────────────────────────────────────────────
    dec = sub.add_parser(
        'decrypt',
        help='Decrypt a file produced by encrypt.',
        description=(
            'Inverts the SDS recurrence. The last sample of the original '
            'audio cannot be recovered and is dropped.'
        ),
    )
    dec.add_argument('audio', help='Encrypted WAV file')
    dec.add_argument('--output', '-o', default=None,
                     help='Output path (default: "<name> (decrypted).wav")')
    _add_key_args(dec)
    dec.set_defaults(func=cmd_decrypt)

    # ── roundtrip ─────────────────────────────────────────────────────────────
    rt = sub.add_parser(
        'roundtrip',
        help='Encrypt then decrypt, writing both files next to the input.',
    )
    rt.add_argument('audio', help='Input WAV file')
    _add_key_args(rt)
    rt.set_defaults(func=cmd_roundtrip)

    return p


# ─────────────────────────────────────────────────────────────────────────────
# Entry point
# ─────────────────────────────────────────────────────────────────────────────

def main(argv: list[str] | None = None):
    parser = build_parser()
    args   = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(name)s: %(message)s')

    try:
        args.func(args)
    except KeyboardInterrupt:
        print('\n⚠ Interrupted.', file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f'✗ Error: {e}', file=sys.stderr)
        if os.environ.get('SDSCRYPT_DEBUG'):
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
