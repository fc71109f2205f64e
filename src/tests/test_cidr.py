import pytest

from vpc_planner.cidr import (
    CidrBlock,
    derive_equal_split,
    overlaps,
    parse_cidr,
    validate_explicit,
    validate_rfc1918,
)
from vpc_planner.errors import CapacityError, ContainmentError, InvalidInputError, OverlapError


def describe_parse_cidr():
    def it_parses_a_network_block():
        block = parse_cidr("192.168.0.0/16")
        assert block.network_address == 0xC0A80000
        assert block.prefix_length == 16
        assert str(block) == "192.168.0.0/16"

    def it_computes_the_broadcast_address():
        block = parse_cidr("10.1.0.0/24")
        assert block.broadcast_address == parse_cidr("10.1.0.255/32").network_address
        assert block.num_addresses == 256

    def it_accepts_the_whole_address_space():
        assert parse_cidr("0.0.0.0/0").num_addresses == 2 ** 32

    @pytest.mark.parametrize("text", [
        "10.0.0.1/16",
        "10.0.0.0",
        "10.0.0.0/33",
        "300.0.0.0/8",
        "not-a-cidr/8",
        "fd00::/8",
        "",
        None,
    ])
    def it_rejects_malformed_blocks(text):
        with pytest.raises(InvalidInputError):
            parse_cidr(text)

    def it_passes_blocks_through():
        block = parse_cidr("10.0.0.0/8")
        assert parse_cidr(block) is block


def describe_cidr_block():
    def it_rejects_host_bits():
        with pytest.raises(InvalidInputError):
            CidrBlock(1, 24)

    def it_rejects_prefix_lengths_outside_the_address_space():
        with pytest.raises(InvalidInputError):
            CidrBlock(0, 33)
        with pytest.raises(InvalidInputError):
            CidrBlock(0, -1)

    def it_orders_by_address():
        blocks = [parse_cidr("10.0.128.0/17"), parse_cidr("10.0.0.0/17")]
        assert [str(block) for block in sorted(blocks)] == ["10.0.0.0/17", "10.0.128.0/17"]

    def it_contains_itself_and_its_children():
        parent = parse_cidr("10.0.0.0/16")
        assert parent.contains(parent)
        assert parent.contains(parse_cidr("10.0.255.0/24"))
        assert not parse_cidr("10.0.255.0/24").contains(parent)


def describe_overlaps():
    @pytest.mark.parametrize("first,second,expected", [
        ("10.0.0.0/16", "10.0.0.0/16", True),
        ("10.0.0.0/16", "10.0.128.0/17", True),
        ("10.0.0.0/17", "10.0.128.0/17", False),
        ("10.0.0.0/18", "10.0.63.255/32", True),
        ("10.0.0.0/18", "10.0.64.0/32", False),
        ("0.0.0.0/0", "203.0.113.0/24", True),
        ("192.168.0.0/18", "192.168.32.0/19", True),
    ])
    def it_is_symmetric(first, second, expected):
        a, b = parse_cidr(first), parse_cidr(second)
        assert overlaps(a, b) == expected
        assert overlaps(b, a) == expected

    def it_overlaps_with_itself(faker):
        block = parse_cidr(f"{faker.ipv4_private(network=True).split('/')[0]}/32")
        assert overlaps(block, block)


def describe_derive_equal_split():
    @pytest.mark.parametrize("parent,count", [
        ("192.168.0.0/16", 1),
        ("192.168.0.0/16", 4),
        ("10.0.0.0/8", 64),
        ("10.20.30.0/24", 256),
        ("172.16.0.0/30", 4),
    ])
    def it_tiles_the_parent(parent, count):
        parent = parse_cidr(parent)
        blocks = derive_equal_split(parent, count)

        assert len(blocks) == count
        assert blocks == sorted(blocks)
        assert all(parent.contains(block) for block in blocks)
        assert validate_explicit(parent, blocks) == []
        assert sum(block.num_addresses for block in blocks) == parent.num_addresses

    def it_extends_the_prefix_by_log2_of_the_count():
        blocks = derive_equal_split(parse_cidr("192.168.0.0/16"), 4)
        assert [str(block) for block in blocks] == [
            "192.168.0.0/18",
            "192.168.64.0/18",
            "192.168.128.0/18",
            "192.168.192.0/18",
        ]

    @pytest.mark.parametrize("count", [0, -2, 3, 6, 12, True, 2.0])
    def it_rejects_counts_that_are_not_powers_of_two(count):
        with pytest.raises(InvalidInputError):
            derive_equal_split(parse_cidr("10.0.0.0/16"), count)

    def it_rejects_splits_beyond_the_address_space():
        with pytest.raises(CapacityError):
            derive_equal_split(parse_cidr("10.0.0.0/30"), 8)


def describe_validate_explicit():
    @pytest.fixture
    def parent():
        return parse_cidr("192.168.0.0/16")

    def it_accepts_the_default_layout(parent):
        children = [parse_cidr(block) for block in [
            "192.168.0.0/18", "192.168.64.0/18", "192.168.128.0/18", "192.168.192.0/18",
        ]]
        assert validate_explicit(parent, children) == []

    def it_reports_nested_children(parent):
        outer, inner = parse_cidr("192.168.0.0/18"), parse_cidr("192.168.32.0/19")

        errors = validate_explicit(parent, [outer, inner])

        assert len(errors) == 1
        error = errors[0]
        assert isinstance(error, OverlapError)
        assert error.nested
        assert {error.first, error.second} == {outer, inner}
        assert "192.168.0.0/18" in str(error) and "192.168.32.0/19" in str(error)

    def it_reports_partial_overlap_across_mask_boundaries(parent):
        errors = validate_explicit(parent, [parse_cidr("192.168.0.0/17"), parse_cidr("192.168.96.0/19")])
        assert len(errors) == 1
        assert isinstance(errors[0], OverlapError)

    def it_reports_blocks_outside_the_parent(parent):
        stray = parse_cidr("10.0.0.0/24")

        errors = validate_explicit(parent, [parse_cidr("192.168.0.0/24"), stray])

        assert len(errors) == 1
        assert isinstance(errors[0], ContainmentError)
        assert errors[0].block == stray
        assert errors[0].parent == parent

    def it_reports_every_violation_in_one_pass(parent):
        candidates = [parse_cidr(block) for block in [
            "192.168.0.0/17",
            "192.168.64.0/18",
            "192.168.64.0/24",
            "172.16.0.0/24",
        ]]

        errors = validate_explicit(parent, candidates)

        assert len([e for e in errors if isinstance(e, OverlapError)]) == 3
        assert len([e for e in errors if isinstance(e, ContainmentError)]) == 1


def describe_validate_rfc1918():
    @pytest.mark.parametrize("block", [
        "10.0.0.0/8", "10.200.0.0/16", "172.16.0.0/12", "172.31.255.0/24", "192.168.0.0/16",
    ])
    def it_accepts_private_ranges(block):
        assert validate_rfc1918(parse_cidr(block))

    @pytest.mark.parametrize("block", [
        "8.8.8.0/24", "172.32.0.0/16", "192.169.0.0/16", "0.0.0.0/0", "10.0.0.0/7",
    ])
    def it_rejects_public_or_straddling_ranges(block):
        assert not validate_rfc1918(parse_cidr(block))
