"""
Tests for cpghmm.core.encoding module.
"""
import gzip
import io
import os
import warnings

import pytest
import numpy as np

from cpghmm.core.encoding import (
    ChunkedVectorBuilder,
    DECODE_WINDOW_SIZE,
    TRAINING_CHUNK_SIZE,
    describe_input,
    encode_base,
    encode_bytes,
    encode_sequence,
    is_fasta_path,
    iter_chunks,
    iter_symbol_blocks,
    iter_symbols,
    read_symbol_blocks,
)


class TestEncodeBase:
    @pytest.mark.parametrize("char,expected", [
        ('A', 0), ('C', 1), ('G', 2), ('T', 3),
        ('a', 0), ('c', 1), ('g', 2), ('t', 3),
    ])
    def test_alphabet(self, char, expected):
        assert encode_base(char) == expected

    @pytest.mark.parametrize("char", ['N', 'n', '>', ' ', '\n', 'U', 'x', 'é'])
    def test_unrecognized_skipped(self, char):
        assert encode_base(char) is None

    def test_multi_character_rejected(self):
        assert encode_base('AC') is None


class TestEncodeSequence:
    def test_mixed_case(self):
        np.testing.assert_array_equal(encode_sequence('AcGt'), [0, 1, 2, 3])

    def test_drops_unrecognized(self):
        encoded = encode_sequence('ACN\nGT-x')
        np.testing.assert_array_equal(encoded, [0, 1, 2, 3])

    def test_empty(self):
        assert len(encode_sequence('')) == 0

    def test_non_ascii(self):
        np.testing.assert_array_equal(encode_sequence('AéC'), [0, 1])

    def test_matches_encode_base(self):
        text = 'xxACGTNNacgt>chr1\nGATTACA'
        expected = [s for s in (encode_base(c) for c in text) if s is not None]
        np.testing.assert_array_equal(encode_sequence(text), expected)


class TestEncodeBytes:
    def test_skips_high_bytes(self):
        np.testing.assert_array_equal(encode_bytes(b"A\xe9C\xffG\x80T"), [0, 1, 2, 3])

    def test_empty(self):
        assert len(encode_bytes(b"")) == 0


class TestIterSymbolBlocks:
    def test_small_blocks(self):
        stream = io.StringIO('ACGT\nNNacgt')
        blocks = list(iter_symbol_blocks(stream, block_size=3))
        np.testing.assert_array_equal(np.concatenate(blocks), [0, 1, 2, 3, 0, 1, 2, 3])

    def test_binary_stream(self):
        stream = io.BytesIO(b"AC\xffgt\x00N")
        blocks = list(iter_symbol_blocks(stream, block_size=3))
        np.testing.assert_array_equal(np.concatenate(blocks), [0, 1, 2, 3])

    def test_blocks_without_symbols_are_skipped(self):
        stream = io.StringIO('NNN\n\nA')
        blocks = list(iter_symbol_blocks(stream, block_size=3))
        assert all(len(b) > 0 for b in blocks)


class TestChunkedVectorBuilder:
    def test_push_seals_at_capacity(self):
        builder = ChunkedVectorBuilder(3)
        assert builder.push(0) is None
        assert builder.push(1) is None
        sealed = builder.push(2)
        np.testing.assert_array_equal(sealed, [0, 1, 2])
        assert builder.pending == 0
        assert builder.sealed_count == 1

    def test_consumer_receives_vectors_in_order(self):
        received = []
        builder = ChunkedVectorBuilder(2, consumer=received.append)
        builder.extend([0, 1, 2, 3, 0])
        assert len(received) == 2
        np.testing.assert_array_equal(received[0], [0, 1])
        np.testing.assert_array_equal(received[1], [2, 3])
        assert builder.pending == 1
        assert builder.total == 5

    def test_partial_never_emitted(self):
        builder = ChunkedVectorBuilder(4)
        assert builder.extend([0, 1, 2]) == []
        assert builder.sealed_count == 0

    def test_sealed_vectors_are_independent(self):
        builder = ChunkedVectorBuilder(2)
        first, second = builder.extend([0, 1, 2, 3])
        np.testing.assert_array_equal(first, [0, 1])
        np.testing.assert_array_equal(second, [2, 3])

    def test_extend_across_calls(self):
        builder = ChunkedVectorBuilder(4)
        assert builder.extend([0, 1]) == []
        sealed = builder.extend([2, 3, 0])
        assert len(sealed) == 1
        np.testing.assert_array_equal(sealed[0], [0, 1, 2, 3])
        assert builder.pending == 1

    @pytest.mark.parametrize("symbol", [-1, 4, 9])
    def test_push_rejects_invalid_symbol(self, symbol):
        builder = ChunkedVectorBuilder(4)
        with pytest.raises(ValueError):
            builder.push(symbol)

    def test_extend_rejects_invalid_symbol(self):
        builder = ChunkedVectorBuilder(4)
        with pytest.raises(ValueError):
            builder.extend([0, 5])

    @pytest.mark.parametrize("capacity", [0, -1, 2.5])
    def test_invalid_capacity(self, capacity):
        with pytest.raises(ValueError):
            ChunkedVectorBuilder(capacity)


class TestIterChunks:
    def test_rechunks_blocks(self):
        blocks = [np.array([0, 1, 2], dtype=np.int8), np.array([3, 0, 1, 2, 3], dtype=np.int8)]
        chunks = list(iter_chunks(blocks, 4))
        assert len(chunks) == 2
        np.testing.assert_array_equal(chunks[0], [0, 1, 2, 3])
        np.testing.assert_array_equal(chunks[1], [0, 1, 2, 3])

    def test_partial_tail_warns(self):
        blocks = [np.array([0, 1, 2, 3, 0], dtype=np.int8)]
        with pytest.warns(UserWarning, match="trailing symbols"):
            chunks = list(iter_chunks(blocks, 4))
        assert len(chunks) == 1

    def test_exact_multiple_no_warning(self):
        blocks = [np.array([0, 1, 2, 3], dtype=np.int8)]
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            chunks = list(iter_chunks(blocks, 2))
        assert len(chunks) == 2

    def test_short_input_yields_nothing(self):
        blocks = [np.array([0, 1], dtype=np.int8)]
        assert list(iter_chunks(blocks, 4, warn_partial=False)) == []


class TestDefaultSizes:
    def test_sizes(self):
        assert TRAINING_CHUNK_SIZE == 65536
        assert DECODE_WINDOW_SIZE == 1048576


class TestReadSymbolBlocks:
    def test_raw_text(self, tmp_path):
        path = tmp_path / "seq.txt"
        path.write_text('ACGT\nNNacgt\n')
        symbols = np.concatenate(list(read_symbol_blocks(str(path))))
        np.testing.assert_array_equal(symbols, [0, 1, 2, 3, 0, 1, 2, 3])

    def test_gzipped_raw_text(self, tmp_path):
        path = tmp_path / "seq.txt.gz"
        with gzip.open(str(path), 'wt') as f:
            f.write('GATTACA')
        symbols = np.concatenate(list(read_symbol_blocks(str(path))))
        np.testing.assert_array_equal(symbols, [2, 0, 3, 3, 0, 1, 0])

    def test_latin1_byte_skipped(self, tmp_path):
        path = tmp_path / "seq.txt"
        path.write_bytes(b"AC\xe9GT")
        symbols = np.concatenate(list(read_symbol_blocks(str(path))))
        np.testing.assert_array_equal(symbols, [0, 1, 2, 3])

    def test_gzipped_invalid_utf8(self, tmp_path):
        path = tmp_path / "seq.txt.gz"
        with gzip.open(str(path), 'wb') as f:
            f.write(b"\xffGA\xfe\x80TC")
        symbols = np.concatenate(list(read_symbol_blocks(str(path))))
        np.testing.assert_array_equal(symbols, [2, 0, 3, 1])

    def test_fasta_headers_not_encoded(self, tmp_path):
        path = tmp_path / "seq.fa"
        path.write_text('>chr1 a test\nACGTN\nacgt\n>chr2\nGGCC\n')
        symbols = np.concatenate(list(read_symbol_blocks(str(path))))
        np.testing.assert_array_equal(symbols, [0, 1, 2, 3, 0, 1, 2, 3, 2, 2, 1, 1])

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            list(read_symbol_blocks(str(tmp_path / "missing.txt")))


class TestDescribeInput:
    def test_fasta_detection(self):
        assert is_fasta_path('chr21.fa')
        assert is_fasta_path('chr21.FASTA.gz')
        assert not is_fasta_path('chr21.txt')

    def test_label(self):
        assert describe_input(os.path.join('data', 'chr21.fa')) == 'chr21.fa (FASTA)'
        assert describe_input('chr21.txt') == 'chr21.txt (raw sequence)'


class TestIterSymbols:
    def test_one_symbol_per_base(self):
        stream = io.StringIO('ac\ngT\nNN')
        assert list(iter_symbols(stream, block_size=2)) == [0, 1, 2, 3]
