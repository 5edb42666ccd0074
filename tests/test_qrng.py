"""Tests for the quantum entropy engine and seed sources."""

import threading
from pathlib import Path

import pytest
from Crypto.Hash import MD5, SHA256

from qrng_provision.errors import InvalidInputError, SeedIOError
from qrng_provision.qrng import (
    FileSeedSource,
    MemorySeedSource,
    QuantumEntropyEngine,
    SeedSource,
    combine_seeds,
    hex_to_bytes,
)

# SHA256 framing of 256 x 0x00 and 256 x 0xFF, and the first 32 keystream bytes
COMBINED_ZERO_FF = "da45e4745a26d8ee80d620a08c6d3ac81e05b5633f1327a7bd060184c12e4bec"
KEYSTREAM_ZERO_FF = "ed25fac06f7d4ab3b4f0528e6f58723ea45fa1500cd22ffd094293d61ce75a47"


class TestCombineSeeds:
    """Tests for the domain-separated seed combiner."""

    def test_deterministic(self, zero_seed: bytes, ff_seed: bytes):
        """Identical seeds always give an identical digest."""
        assert combine_seeds(zero_seed, ff_seed) == combine_seeds(zero_seed, ff_seed)

    def test_digest_size(self, zero_seed: bytes, ff_seed: bytes):
        """Combined seed is a 32-byte SHA-256 digest."""
        assert len(combine_seeds(zero_seed, ff_seed)) == 32

    def test_framing(self):
        """Digest covers prefix, separator and suffix labels."""
        expected = SHA256.new(
            b"QRNG_QUANTUM_ENTROPY_" + b"abc" + b"_SEPARATOR_" + b"def" + b"_END"
        ).digest()
        assert combine_seeds(b"abc", b"def") == expected

    def test_order_matters(self, zero_seed: bytes, ff_seed: bytes):
        """Swapping the seeds changes the digest."""
        assert combine_seeds(zero_seed, ff_seed) != combine_seeds(ff_seed, zero_seed)

    def test_shifted_boundary_differs(self):
        """Moving bytes across the seed boundary changes the digest."""
        assert combine_seeds(b"ab", b"c") != combine_seeds(b"a", b"bc")


class TestQuantumEntropyEngine:
    """Tests for QuantumEntropyEngine."""

    def test_generate_length(self, engine: QuantumEntropyEngine):
        """generate returns the requested number of bytes."""
        assert len(engine.generate(16)) == 16
        assert len(engine.generate(1000)) == 1000
        assert engine.generate(0) == b""

    def test_generate_advances(self, engine: QuantumEntropyEngine):
        """Two successive draws differ."""
        first = engine.generate(16)
        second = engine.generate(16)
        assert first != second

    def test_generate_is_stream(self, zero_seed: bytes, ff_seed: bytes):
        """Split draws equal one large draw from an identically seeded engine."""
        a = QuantumEntropyEngine(zero_seed, ff_seed)
        b = QuantumEntropyEngine(zero_seed, ff_seed)
        assert a.generate(16) + a.generate(16) == b.generate(32)

    def test_generate_refreshed_repeats(self, engine: QuantumEntropyEngine):
        """Refreshing resets to the same state every time."""
        first = engine.generate_refreshed(16)
        second = engine.generate_refreshed(16)
        assert first == second

    def test_refreshed_matches_fresh_engine(self, zero_seed: bytes, ff_seed: bytes):
        """A refreshed draw equals the first draw of a new engine."""
        used = QuantumEntropyEngine(zero_seed, ff_seed)
        used.generate(100)
        fresh = QuantumEntropyEngine(zero_seed, ff_seed)
        assert used.generate_refreshed(16) == fresh.generate(16)

    def test_concrete_scenario(self, zero_seed: bytes, ff_seed: bytes):
        """Zero / 0xFF seeds: stream draws differ, refreshed draws repeat."""
        digest = combine_seeds(zero_seed, ff_seed)
        assert digest.hex() == COMBINED_ZERO_FF

        engine = QuantumEntropyEngine(zero_seed, ff_seed)
        assert engine.combined_seed() == digest
        assert engine.generate(16) != engine.generate(16)
        assert engine.generate_refreshed(16) == engine.generate_refreshed(16)

    def test_known_keystream(self, zero_seed: bytes, ff_seed: bytes):
        """The generator is ChaCha20 keyed by the combined seed with a zero nonce."""
        engine = QuantumEntropyEngine(zero_seed, ff_seed)
        assert engine.generate(32).hex() == KEYSTREAM_ZERO_FF
        assert engine.generate_refreshed(16).hex() == KEYSTREAM_ZERO_FF[:32]

    def test_negative_size(self, engine: QuantumEntropyEngine):
        """Negative sizes are rejected."""
        with pytest.raises(InvalidInputError):
            engine.generate(-1)
        with pytest.raises(InvalidInputError):
            engine.generate_refreshed(-1)

    def test_rejected_refresh_keeps_stream(self, zero_seed: bytes, ff_seed: bytes):
        """A rejected refreshed draw does not reseed the generator."""
        reference = QuantumEntropyEngine(zero_seed, ff_seed).generate(32)
        engine = QuantumEntropyEngine(zero_seed, ff_seed)

        assert engine.generate(16) == reference[:16]
        with pytest.raises(InvalidInputError):
            engine.generate_refreshed(-1)
        assert engine.generate(16) == reference[16:]

    def test_empty_seed_rejected(self, zero_seed: bytes):
        """An empty seed is malformed input."""
        with pytest.raises(InvalidInputError):
            QuantumEntropyEngine(zero_seed, b"")

    def test_non_bytes_seed_rejected(self, zero_seed: bytes):
        """Seeds must be bytes."""
        with pytest.raises(InvalidInputError):
            QuantumEntropyEngine(zero_seed, "ffff")

    def test_short_digest_rejected(self, zero_seed: bytes, ff_seed: bytes):
        """A combiner hash shorter than 32 bytes cannot seed the generator."""
        with pytest.raises(InvalidInputError):
            QuantumEntropyEngine(zero_seed, ff_seed, hash_module=MD5)

    def test_seed_info(self, engine: QuantumEntropyEngine):
        """seed_info reports seed sizes and primitives."""
        info = engine.seed_info()
        assert info["seed_a_size"] == 256
        assert info["seed_b_size"] == 256
        assert info["combiner"] == "SHA256"
        assert info["generator"] == "ChaCha20"

    def test_concurrent_draws_are_serialized(self, zero_seed: bytes, ff_seed: bytes):
        """Concurrent draws neither lose nor duplicate stream bytes."""
        shared = QuantumEntropyEngine(zero_seed, ff_seed)
        chunks = []
        chunks_lock = threading.Lock()

        def worker():
            for _ in range(20):
                chunk = shared.generate(32)
                with chunks_lock:
                    chunks.append(chunk)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        reference = QuantumEntropyEngine(zero_seed, ff_seed).generate(32 * len(chunks))
        expected = {reference[i : i + 32] for i in range(0, len(reference), 32)}
        assert len(chunks) == 160
        assert set(chunks) == expected


class TestDerive:
    """Tests for per-device entropy derivation."""

    @pytest.mark.parametrize("size", [1, 8, 16, 31, 32, 33, 64, 1024])
    def test_truncation(self, engine: QuantumEntropyEngine, size: int):
        """derive returns exactly min(size, 32) bytes."""
        assert len(engine.derive("device_123", size)) == min(size, 32)

    def test_formula(self, engine: QuantumEntropyEngine, zero_seed: bytes, ff_seed: bytes):
        """derive hashes the device label with refreshed stream output."""
        base = QuantumEntropyEngine(zero_seed, ff_seed).generate(16 + 32)
        expected = SHA256.new(b"DEVICE_ENTROPY_" + b"device_123" + b"_" + base).digest()[:16]
        assert engine.derive("device_123", 16) == expected

    def test_deterministic(self, engine: QuantumEntropyEngine):
        """Same device and size always derive the same entropy."""
        assert engine.derive("device_123", 32) == engine.derive("device_123", 32)

    def test_device_bound(self, engine: QuantumEntropyEngine):
        """Different devices get different entropy."""
        assert engine.derive("device_1", 32) != engine.derive("device_2", 32)

    def test_prefix_not_truncation_of_larger(self, engine: QuantumEntropyEngine):
        """Different requested sizes draw different base entropy."""
        assert engine.derive("device_1", 16) != engine.derive("device_1", 32)[:16]

    @pytest.mark.parametrize("size", [0, -5])
    def test_non_positive_size(self, engine: QuantumEntropyEngine, size: int):
        """Non-positive sizes are rejected."""
        with pytest.raises(InvalidInputError):
            engine.derive("device_1", size)

    def test_device_id_must_be_str(self, engine: QuantumEntropyEngine):
        """Device identifiers are text."""
        with pytest.raises(InvalidInputError):
            engine.derive(b"device_1", 16)


class TestHexToBytes:
    """Tests for hex_to_bytes."""

    def test_hello(self):
        """Decode simple hex."""
        assert hex_to_bytes("48656c6c6f") == b"Hello"

    def test_whitespace_ignored(self):
        """Whitespace and newlines are stripped."""
        assert hex_to_bytes("  4865\n6c6c 6f\n") == b"Hello"

    def test_odd_length(self):
        """Odd-length strings are rejected."""
        with pytest.raises(InvalidInputError):
            hex_to_bytes("abc")

    def test_invalid_characters(self):
        """Non-hex characters are rejected."""
        with pytest.raises(InvalidInputError):
            hex_to_bytes("zz")


class TestFileSeedSource:
    """Tests for FileSeedSource."""

    def test_protocol(self):
        """FileSeedSource satisfies the SeedSource protocol."""
        assert isinstance(FileSeedSource(), SeedSource)

    def test_load_hex(self, seed_files: tuple):
        """Hex text files are decoded in auto mode."""
        seed_a, _ = seed_files
        data = FileSeedSource().load(str(seed_a))
        assert len(data) == 256
        assert data[:8] == bytes.fromhex("0123456789abcdef")

    def test_load_raw(self, temp_dir: Path):
        """Binary files are returned as-is in auto mode."""
        path = temp_dir / "raw.bin"
        path.write_bytes(b"\x00\x01\xfe\xff" * 8)
        assert FileSeedSource().load(str(path)) == b"\x00\x01\xfe\xff" * 8

    def test_raw_mode_skips_hex(self, seed_files: tuple):
        """Raw mode never decodes hex."""
        seed_a, _ = seed_files
        data = FileSeedSource(encoding="raw").load(seed_a)
        assert data == seed_a.read_bytes()

    def test_hex_mode_odd_length(self, temp_dir: Path):
        """Odd-length hex content is an input error."""
        path = temp_dir / "odd.bin"
        path.write_text("abc")
        with pytest.raises(InvalidInputError):
            FileSeedSource(encoding="hex").load(path)

    def test_hex_mode_binary_content(self, temp_dir: Path):
        """Binary content in hex mode is an input error."""
        path = temp_dir / "bin.bin"
        path.write_bytes(b"\xff\xfe")
        with pytest.raises(InvalidInputError):
            FileSeedSource(encoding="hex").load(path)

    def test_missing_file(self, temp_dir: Path):
        """Missing files raise SeedIOError."""
        with pytest.raises(SeedIOError):
            FileSeedSource().load(temp_dir / "nope.bin")

    def test_base_dir(self, seed_files: tuple):
        """Relative references resolve against base_dir."""
        seed_a, _ = seed_files
        source = FileSeedSource(base_dir=seed_a.parent)
        assert len(source.load("seed_a.bin")) == 256

    def test_unknown_encoding(self):
        """Unknown encodings are rejected."""
        with pytest.raises(InvalidInputError):
            FileSeedSource(encoding="base64")

    def test_engine_from_source(self, seed_files: tuple):
        """Engine loads both seeds through the source."""
        seed_a, seed_b = seed_files
        engine = QuantumEntropyEngine.from_source(FileSeedSource(), str(seed_a), str(seed_b))
        assert engine.seed_a == bytes.fromhex("0123456789abcdef" * 32)
        assert engine.seed_b == bytes.fromhex("fedcba9876543210" * 32)
        assert len(engine.generate(32)) == 32


class TestMemorySeedSource:
    """Tests for MemorySeedSource."""

    def test_load(self, zero_seed: bytes, ff_seed: bytes):
        """Known references return their buffers."""
        source = MemorySeedSource({"a": zero_seed, "b": ff_seed})
        engine = QuantumEntropyEngine.from_source(source, "a", "b")
        assert engine.combined_seed() == combine_seeds(zero_seed, ff_seed)

    def test_unknown_reference(self):
        """Unknown references raise SeedIOError."""
        with pytest.raises(SeedIOError):
            MemorySeedSource({}).load("missing")
