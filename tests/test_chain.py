"""Tests for chain record parsing, validation and serialization."""

import warnings

import pytest

import liftchain as lc
from liftchain import Chain, ContinuousBlock, Interval


def chain_lines(header, blocks):
    """Chain text lines from a header and (size,) or (size, dt, dq) tuples."""
    lines = [header]
    for blk in blocks:
        lines.append("\t".join(str(v) for v in blk))
    lines.append("")
    return lines


CHAIN1 = [
    "chain 200000 chr25 100000 + 2000 8000 chr1 500000 + 12000 18500 1",
    "500\t0\t200",
    "800\t300\t600",
    "4400",
    "",
]


class TestParseChain:

    def test_parse_values(self):
        """Blocks follow the cursor fold over size/dt/dq.

        Block 1: from 2000..2500, to 12000..12500
        Block 2: from 2500..3300, to 12700..13500  (dt=0, dq=200)
        Block 3: from 3600..8000, to 14100..18500  (dt=300, dq=600)
        """
        chain = lc.parse_chain(CHAIN1)
        assert chain.score == 200000.0
        assert chain.from_sequence_name == "chr25"
        assert chain.from_sequence_size == 100000
        assert (chain.from_chain_start, chain.from_chain_end) == (2000, 8000)
        assert chain.to_sequence_name == "chr1"
        assert chain.to_sequence_size == 500000
        assert chain.to_negative_strand is False
        assert (chain.to_chain_start, chain.to_chain_end) == (12000, 18500)
        assert chain.id == 1
        assert chain.blocks == (
            ContinuousBlock(2000, 12000, 500),
            ContinuousBlock(2500, 12700, 800),
            ContinuousBlock(3600, 14100, 4400),
        )
        assert chain.from_interval == Interval("chr25", 2001, 8000)

    def test_block_ends(self):
        block = ContinuousBlock(10, 100, 5)
        assert block.from_end == 15
        assert block.to_end == 105

    def test_valid_chain_issues_no_warning(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            lc.parse_chain(CHAIN1)

    def test_newlines_and_commas(self):
        lines = [
            "chain 1000,chr1,1000,+,0,100,chrA,1000,-,0,100,9\n",
            "100\n",
            "\n",
        ]
        chain = lc.parse_chain(lines)
        assert chain.to_negative_strand is True
        assert chain.id == 9

    def test_comments_skipped(self):
        lines = [
            "# leading comment",
            "",
            "chain 1000 chr1 1000 + 0 100 chrA 1000 + 0 110 1",
            "50\t0\t10",
            "# between blocks",
            "50",
            "",
        ]
        chain = lc.parse_chain(lines)
        assert chain.blocks == (ContinuousBlock(0, 0, 50), ContinuousBlock(50, 60, 50))

    def test_missing_final_blank_line(self):
        chain = lc.parse_chain(["chain 1 chr1 1000 + 0 100 chrA 1000 + 0 100 1", "100"])
        assert len(chain.blocks) == 1

    def test_no_record(self):
        with pytest.raises(lc.MalformedHeaderError):
            lc.parse_chain(["# only a comment", ""])


class TestParseErrors:

    @pytest.mark.parametrize("header", [
        "chain 1000 chr1 1000 + 0 100 chrA 1000 + 0 100",
        "chain 1000 chr1 1000 + 0 100 chrA 1000 + 0 100 1 extra",
        "chian 1000 chr1 1000 + 0 100 chrA 1000 + 0 100 1",
        "chain abc chr1 1000 + 0 100 chrA 1000 + 0 100 1",
        "chain 1000 chr1 1000 + 0 1x0 chrA 1000 + 0 100 1",
        "chain 1000 chr1 1000 - 0 100 chrA 1000 + 0 100 1",
        "chain 1000 chr1 1000 + 0 100 chrA 1000 x 0 100 1",
        "chain 1000 chr1 1_000 + 0 100 chrA 1000 + 0 100 1",
        "chain 1000 chr1 1000 + +0 100 chrA 1000 + 0 100 1",
        "chain 1000 chr1 1000 + 0 100 chrA 1000 + 0 100 \u0661",
    ])
    def test_malformed_header(self, header):
        with pytest.raises(lc.MalformedHeaderError) as excinfo:
            lc.parse_chain([header, "100", ""], source="bad.chain")
        assert excinfo.value.lineno == 1
        assert "bad.chain" in str(excinfo.value)
        assert "line 1" in str(excinfo.value)

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            lc.parse_chain(["chain 1 2 3", "100", ""])

    def test_record_ends_before_terminal_block(self):
        lines = ["chain 1000 chr1 1000 + 0 100 chrA 1000 + 0 100 1", "50\t0\t0", "", "50", ""]
        with pytest.raises(lc.TruncatedRecordError) as excinfo:
            lc.parse_chain(lines)
        assert excinfo.value.lineno == 3

    def test_input_ends_before_terminal_block(self):
        with pytest.raises(lc.TruncatedRecordError):
            lc.parse_chain(["chain 1000 chr1 1000 + 0 100 chrA 1000 + 0 100 1", "50\t0\t0"])

    def test_header_without_blocks(self):
        with pytest.raises(lc.TruncatedRecordError):
            lc.parse_chain(["chain 1000 chr1 1000 + 0 100 chrA 1000 + 0 100 1", ""])

    def test_content_after_terminal_block(self):
        lines = ["chain 1000 chr1 1000 + 0 100 chrA 1000 + 0 100 1", "50", "50", ""]
        with pytest.raises(lc.TruncatedRecordError) as excinfo:
            lc.parse_chain(lines)
        assert excinfo.value.lineno == 3

    @pytest.mark.parametrize("block", [
        "0", "-5", "50\t0", "50\tx\t0", "5a",
        "1_0", "+50", "50\t+0\t0", "\u0665\u0660",
    ])
    def test_invalid_block(self, block):
        with pytest.raises(lc.InvalidChainError):
            lc.parse_chain(["chain 1000 chr1 1000 + 0 100 chrA 1000 + 0 100 1", block, ""])

    def test_empty_block_list(self):
        with pytest.raises(lc.InvalidChainError):
            Chain(1.0, "chr1", 100, 0, 10, "chrA", 100, False, 0, 10, 1, blocks=())

    def test_non_positive_block_constructed(self):
        with pytest.raises(lc.InvalidChainError):
            Chain(1.0, "chr1", 100, 0, 10, "chrA", 100, False, 0, 10, 1,
                  blocks=(ContinuousBlock(0, 0, 0),))


class TestValidation:

    OVERLAPPING = chain_lines(
        "chain 100 chr1 1000 + 0 190 chrA 1000 + 0 200 1",
        [(100, -10, 0), (100,)],
    )

    def test_overlapping_blocks_warn(self):
        with pytest.warns(lc.StructuralInconsistencyWarning, match="from starts before previous"):
            chain = lc.parse_chain(self.OVERLAPPING)
        assert chain.blocks[1] == ContinuousBlock(90, 100, 100)

    def test_overlapping_blocks_strict(self):
        with pytest.raises(lc.StructuralInconsistencyError):
            lc.parse_chain(self.OVERLAPPING, strict=True)

    def test_strict_from_config(self):
        lc.CONFIG["strict"] = True
        with pytest.raises(lc.StructuralInconsistencyError):
            lc.parse_chain(self.OVERLAPPING)

    def test_span_mismatch_warns(self):
        lines = chain_lines("chain 100 chr1 1000 + 0 150 chrA 1000 + 0 100 1", [(100,)])
        with pytest.warns(lc.StructuralInconsistencyWarning, match="Last block from end"):
            lc.parse_chain(lines)

    def test_chain_longer_than_sequence_warns(self):
        lines = chain_lines("chain 100 chr1 50 + 0 100 chrA 1000 + 0 100 1", [(100,)])
        with pytest.warns(lc.StructuralInconsistencyWarning, match="from sequence length"):
            lc.parse_chain(lines)

    def test_validate_returns_problems(self):
        chain = Chain(1.0, "chr1", 1000, 0, 100, "chrA", 1000, False, 5, 105, 4,
                      blocks=(ContinuousBlock(0, 0, 100),))
        with pytest.warns(lc.StructuralInconsistencyWarning):
            problems = chain.validate()
        assert any("First block to start" in p for p in problems)
        assert any("Last block to end" in p for p in problems)

    def test_validate_clean(self):
        chain = lc.parse_chain(CHAIN1)
        assert chain.validate(strict=True) == []


class TestFormatChain:

    def test_format_text(self):
        chain = lc.parse_chain(CHAIN1)
        text = lc.format_chain(chain)
        assert text.splitlines() == [
            "chain\t200000.0\tchr25\t100000\t+\t2000\t8000\tchr1\t500000\t+\t12000\t18500\t1",
            "500\t0\t200",
            "800\t300\t600",
            "4400",
            "",
        ]
        assert text.endswith("4400\n\n")

    @pytest.mark.parametrize("lines", [
        CHAIN1,
        chain_lines("chain 12.375 chrM 16569 + 0 16569 chrM 16571 + 0 16571 77",
                    [(300, 0, 2), (16269,)]),
        chain_lines("chain 0.5 chr3 5000 + 100 400 chr9 8000 - 1000 1350 2",
                    [(100, 50, 100), (50, 0, 0), (100,)]),
    ])
    def test_round_trip(self, lines):
        chain = lc.parse_chain(lines)
        again = lc.parse_chain(lc.format_chain(chain).splitlines())
        assert again == chain
        assert hash(again) == hash(chain)

    def test_write_chain(self, tmp_path):
        chain = lc.parse_chain(CHAIN1)
        path = tmp_path / "one.chain"
        with open(path, "w") as f:
            lc.write_chain(chain, f)
        with open(path) as f:
            assert lc.parse_chain(f) == chain
