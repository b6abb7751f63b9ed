import pytest

from chainlens.core.chains import SUPPORTED_CHAINS, get_chain
from chainlens.core.fallback.analysis import (
    ChainHoldings,
    GasTiers,
    NFTHoldings,
    assess_risk,
    nft_insights,
    portfolio_recommendations,
    shorten_address,
    token_label,
    top_collections,
)


def _holdings(chain_id, balance="0", tokens=None, native_value=0.0):
    return ChainHoldings(
        chain=get_chain(chain_id),
        native_balance=balance,
        native_value=native_value,
        tokens=tokens or [],
    )


class TestChainHoldings:
    def test_from_responses_tags_tokens_with_chain(self):
        holdings = ChainHoldings.from_responses(
            get_chain("base"),
            {"balance": "0.5", "usdValue": "1000"},
            [{"symbol": "USDC", "usdValue": "250.5"}],
        )

        assert holdings.native_balance == "0.5"
        assert holdings.tokens == [{"symbol": "USDC", "usdValue": "250.5", "chain": "base"}]
        assert holdings.total_value == pytest.approx(1250.5)
        assert holdings.is_active

    def test_missing_balance_defaults_to_zero(self):
        holdings = ChainHoldings.from_responses(get_chain("bsc"), {}, [])

        assert holdings.native_balance == "0"
        assert holdings.total_value == 0
        assert not holdings.is_active

    def test_activity_from_balance_or_tokens(self):
        assert _holdings("ethereum", balance="0.01").is_active
        assert _holdings("ethereum", tokens=[{"symbol": "X"}]).is_active
        assert not _holdings("ethereum", balance="not-a-number").is_active


class TestRisk:
    def test_single_valued_chain_is_fully_concentrated(self):
        holdings = [_holdings("ethereum", native_value=500.0)] + [
            _holdings(chain.id) for chain in SUPPORTED_CHAINS[1:]
        ]

        risk = assess_risk(holdings)

        assert risk.concentration == 100
        assert risk.diversification == 1 / 6 * 100

    @pytest.mark.parametrize("active", range(0, 7))
    def test_diversification_is_active_share_of_all_chains(self, active):
        holdings = [
            _holdings(chain.id, balance="1" if index < active else "0")
            for index, chain in enumerate(SUPPORTED_CHAINS)
        ]

        assert assess_risk(holdings).diversification == active / 6 * 100

    def test_no_value_means_no_concentration(self):
        assert assess_risk([_holdings("ethereum", balance="2")]).concentration == 0.0

    def test_stability_scales_with_tokens_and_caps(self):
        four = [_holdings("ethereum", tokens=[{"symbol": str(i)} for i in range(4)])]
        many = [_holdings("ethereum", tokens=[{"symbol": str(i)} for i in range(25)])]

        assert assess_risk(four).stability == pytest.approx(40.0)
        assert assess_risk(many).stability == 100.0
        assert assess_risk([]).stability == 0.0


def test_portfolio_recommendations():
    risk = assess_risk([_holdings("ethereum", native_value=10.0)])

    assert portfolio_recommendations(risk, total_tokens=0, active_chains=1) == [
        "Consider diversifying across more chains",
        "High concentration risk - consider rebalancing",
        "Consider adding more tokens for better diversification",
    ]

    balanced = assess_risk(
        [_holdings(chain.id, native_value=10.0, tokens=[{"symbol": "A"}] * 2) for chain in SUPPORTED_CHAINS]
    )
    assert portfolio_recommendations(balanced, total_tokens=12, active_chains=6) == [
        "Good multi-chain diversification! ✅",
    ]


@pytest.mark.parametrize(
    "total, active, first",
    [
        (0, 0, "No NFTs found across all chains"),
        (3, 2, "Small NFT collection - consider expanding"),
        (9, 3, "Well-diversified NFT portfolio across multiple chains! ✅"),
        (9, 1, "Consider diversifying across more chains"),
    ],
)
def test_nft_insights(total, active, first):
    insights = nft_insights(total, active)

    assert insights[0] == first
    assert len(insights) == 2


def test_focus_insight_names_chain_count():
    assert nft_insights(7, 2)[1] == "Current focus on 2 chain(s)"


def test_top_collections_group_by_contract_and_chain():
    holdings = [
        NFTHoldings(get_chain("ethereum"), nfts=[{"contractAddress": "0xaaa"}] * 3 + [{}]),
        NFTHoldings(get_chain("polygon"), nfts=[{"contractAddress": "0xaaa"}]),
    ]

    assert top_collections(holdings) == [
        (("0xaaa", "ethereum"), 3),
        (("unknown", "ethereum"), 1),
        (("0xaaa", "polygon"), 1),
    ]


def test_address_labels():
    assert shorten_address("0x1234567890abcdef1234567890abcdef12345678") == "0x1234...5678"
    assert shorten_address(None) == "Unknown"
    assert token_label({"symbol": "USDC", "tokenAddress": "0xdead"}) == "USDC"
    assert token_label({"tokenAddress": "0x1234567890abcdef1234567890abcdef12345678"}) == "0x1234...5678"


class TestGasTiers:
    def test_twenty_gwei(self):
        tiers = GasTiers.from_wei(20_000_000_000)

        assert (tiers.slow, tiers.standard, tiers.fast, tiers.base_fee) == (16, 20, 24, 18)
        assert tiers.to_dict() == {"slow": 16, "standard": 20, "fast": 24, "baseFee": 18}

    def test_half_values_round_up(self):
        # 2.5 gwei: slow 2.0, standard 2.5 -> 3, fast 3.0, base 2.25 -> 2
        tiers = GasTiers.from_wei(2_500_000_000)

        assert (tiers.slow, tiers.standard, tiers.fast, tiers.base_fee) == (2, 3, 3, 2)

    def test_zero(self):
        assert GasTiers.from_wei(0).to_dict() == {"slow": 0, "standard": 0, "fast": 0, "baseFee": 0}
