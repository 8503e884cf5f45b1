"""
Tests for the clamd INSTREAM client.

Coverage matrix:

  Framing        length prefixes, chunk split, zero terminator
  Verdicts       "stream: OK" accepts, anything else rejects with raw text
  Dialing        retries until connected, then scans
  Unreachable    exhausted retries raise ScanTransportError from last error
  Configuration  tcp address parsing, scanner selection
"""

import pytest

from ddc.app.core.config import Settings
from ddc.app.core.errors import ScanRejectedError, ScanTransportError
from ddc.app.services.clamav import (
    CHUNK_SIZE,
    ClamAVScanner,
    NullScanner,
    build_scanner,
    encode_chunk_length,
)
from ddc.tests.fixtures.scanners import EICAR, FakeClamd

pytestmark = pytest.mark.anyio


# ---------------------------------------------------------------------------
# Framing
# ---------------------------------------------------------------------------

def test_chunk_length_is_big_endian_uint32():
    assert encode_chunk_length(0) == b"\x00\x00\x00\x00"
    assert encode_chunk_length(CHUNK_SIZE) == b"\x00\x10\x00\x00"
    assert encode_chunk_length(0xFFFFFFFF) == b"\xff\xff\xff\xff"


@pytest.mark.parametrize("length", [-1, 1 << 32])
def test_chunk_length_outside_uint32_is_rejected(length):
    with pytest.raises(ValueError):
        encode_chunk_length(length)


async def test_stream_is_split_into_chunks():
    async with FakeClamd() as clamd:
        scanner = ClamAVScanner("unix", clamd.path, chunk_size=4)
        await scanner.scan(b"0123456789")

    assert clamd.commands == [b"nINSTREAM\n"]
    assert clamd.streams == [b"0123456789"]
    assert clamd.chunk_sizes == [[4, 4, 2]]


async def test_empty_payload_sends_only_terminator():
    async with FakeClamd() as clamd:
        await ClamAVScanner("unix", clamd.path).scan(b"")

    assert clamd.streams == [b""]
    assert clamd.chunk_sizes == [[]]


# ---------------------------------------------------------------------------
# Verdicts
# ---------------------------------------------------------------------------

async def test_infected_payload_is_rejected_with_daemon_text():
    async with FakeClamd() as clamd:
        scanner = ClamAVScanner("unix", clamd.path)
        with pytest.raises(ScanRejectedError) as exc_info:
            await scanner.scan(b"prefix " + EICAR + b" suffix")

    assert str(exc_info.value) == (
        "unexpected response from clamd "
        "'stream: Win.Test.EICAR_HDB-1 FOUND\n'"
    )


async def test_each_scan_uses_a_fresh_connection():
    async with FakeClamd() as clamd:
        scanner = ClamAVScanner("unix", clamd.path)
        await scanner.scan(b"first")
        await scanner.scan(b"second")

    assert clamd.streams == [b"first", b"second"]


# ---------------------------------------------------------------------------
# Dialing
# ---------------------------------------------------------------------------

async def test_dial_retries_then_scans():
    async with FakeClamd() as clamd:
        scanner = ClamAVScanner("unix", clamd.path, dial_attempts=5)

        real_open = scanner._open
        calls = 0

        def flaky_open():
            nonlocal calls
            calls += 1
            if calls < 3:
                raise ConnectionRefusedError("clamd is starting")
            return real_open()

        scanner._open = flaky_open
        await scanner.scan(b"payload")

    assert calls == 3
    assert clamd.streams == [b"payload"]


async def test_unreachable_daemon_raises_transport_error(tmp_path):
    scanner = ClamAVScanner(
        "unix",
        str(tmp_path / "missing.sock"),
        dial_timeout=0.1,
        dial_attempts=3,
    )

    with pytest.raises(ScanTransportError) as exc_info:
        await scanner.scan(b"payload")

    assert isinstance(exc_info.value.__cause__, OSError)


async def test_every_dial_attempt_is_used(tmp_path):
    scanner = ClamAVScanner(
        "unix",
        str(tmp_path / "missing.sock"),
        dial_timeout=0.1,
        dial_attempts=4,
    )
    calls = 0

    def refused():
        nonlocal calls
        calls += 1
        raise ConnectionRefusedError(f"attempt {calls}")

    scanner._open = refused

    with pytest.raises(ScanTransportError) as exc_info:
        await scanner.scan(b"payload")

    assert calls == 4
    # The last dial error is the one reported
    assert "attempt 4" in str(exc_info.value.__cause__)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def test_tcp_address_is_split_into_host_and_port():
    scanner = ClamAVScanner("tcp", "127.0.0.1:3310")
    assert scanner._tcp_endpoint == ("127.0.0.1", 3310)

    scanner = ClamAVScanner("tcp", "[::1]:3310")
    assert scanner._tcp_endpoint == ("::1", 3310)


@pytest.mark.parametrize("address", ["localhost", "localhost:", ":3310"])
def test_malformed_tcp_address_is_rejected(address):
    with pytest.raises(ValueError):
        ClamAVScanner("tcp", address)


def test_unknown_network_is_rejected():
    with pytest.raises(ValueError):
        ClamAVScanner("udp", "127.0.0.1:3310")


def test_blank_socket_disables_scanning():
    settings = Settings(clamd_socket="  ")

    assert settings.clamav_enabled is False
    assert isinstance(build_scanner(settings), NullScanner)


def test_configured_socket_enables_scanning():
    settings = Settings(
        clamd_network="tcp",
        clamd_socket="clamav:3310",
        clamd_dial_attempts=2,
    )

    scanner = build_scanner(settings)

    assert isinstance(scanner, ClamAVScanner)
    assert scanner._tcp_endpoint == ("clamav", 3310)
    assert scanner.dial_attempts == 2


async def test_null_scanner_accepts_anything():
    await NullScanner().scan(EICAR)
