"""Tests for leadqual.pipeline.scoring — LeadScorer and its pure helpers."""
import pytest
from unittest.mock import AsyncMock, patch

from leadqual.pipeline import scoring
from leadqual.pipeline.base import ScoreResult
from leadqual.pipeline.scoring import (
    FALLBACK_RESULT,
    LeadScorer,
    build_explanation_prompt,
    build_lead_profile_text,
    classify_tier,
    default_ideal_customer_text,
    ideal_customer_text_for,
    load_scoring_config,
    rank_leads,
    resolve_ideal_customer_text,
    truncate_explanation,
)
from leadqual.services.vector_math import DimensionMismatch


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _vectors_with_similarity(sim):
    """Two unit vectors whose cosine similarity is exactly sim."""
    return [1.0, 0.0], [sim, (1 - sim * sim) ** 0.5]


def _embedder_for(sim, lead_marker='Name:'):
    """Fake embed(): lead profile text gets one vector, anything else the other."""
    lead_vec, ideal_vec = _vectors_with_similarity(sim)

    async def embed(text):
        return lead_vec if text.startswith(lead_marker) else ideal_vec
    return AsyncMock(side_effect=embed)


@pytest.fixture(autouse=True)
def _reset_config_cache():
    with patch.object(scoring, '_scoring_config', None):
        yield


# ---------------------------------------------------------------------------
# Tier classification
# ---------------------------------------------------------------------------

class TestClassifyTier:
    """classify_tier(similarity) with inclusive lower bounds 0.75 / 0.50."""

    @pytest.mark.parametrize('similarity,tier', [
        (0.80, 'high'),
        (0.60, 'medium'),
        (0.30, 'low'),
        (0.75, 'high'),
        (0.50, 'medium'),
        (0.7499999, 'medium'),
        (0.4999999, 'low'),
        (1.0, 'high'),
        (0.0, 'low'),
        (-0.4, 'low'),
    ])
    def test_thresholds(self, similarity, tier):
        assert classify_tier(similarity) == tier


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

class TestBuildLeadProfileText:

    def test_fixed_field_order(self, sample_lead):
        text = build_lead_profile_text(sample_lead)
        lines = text.splitlines()
        assert [line.split(':')[0] for line in lines] == ['Name', 'Title', 'Company', 'Email', 'Notes']
        assert lines[0] == 'Name: John Smith'
        assert lines[1] == 'Title: CTO'
        assert lines[2] == 'Company: TechCorp'
        assert lines[4] == 'Notes: decision maker, budget authority'

    def test_missing_fields_get_defaults(self):
        text = build_lead_profile_text({'first_name': 'Ann', 'email': 'ann@x.com'})
        assert 'Title: Unknown' in text
        assert 'Company: Unknown' in text
        assert text.endswith('Notes: ')

    def test_deterministic(self, sample_lead):
        assert build_lead_profile_text(sample_lead) == build_lead_profile_text(dict(sample_lead))


class TestResolveIdealCustomerText:

    def test_uses_event_criteria(self):
        assert resolve_ideal_customer_text('Hospital CIOs') == 'Hospital CIOs'

    @pytest.mark.parametrize('criteria', [None, '', '   \n'])
    def test_blank_falls_back_to_default(self, criteria):
        assert resolve_ideal_customer_text(criteria) == default_ideal_customer_text()

    def test_default_mentions_decision_maker(self):
        assert 'decision maker' in default_ideal_customer_text()


class TestTruncateExplanation:

    def test_short_text_unchanged(self):
        assert truncate_explanation('Good fit.') == 'Good fit.'

    def test_exactly_200_unchanged(self):
        text = 'a' * 200
        assert truncate_explanation(text) == text

    def test_long_text_truncated_to_197_plus_ellipsis(self):
        result = truncate_explanation('b' * 500)
        assert len(result) == 200
        assert result == 'b' * 197 + '...'


class TestExplanationPrompt:

    def test_includes_context_and_instructions(self):
        prompt = build_explanation_prompt('Name: A', 'Ideal: B', 'low', 0.42)
        assert 'Name: A' in prompt
        assert 'Ideal: B' in prompt
        assert '"low"' in prompt
        assert '42%' in prompt
        assert 'constructive' in prompt
        assert '2-3' in prompt


class TestLoadScoringConfig:

    def test_loads_yaml(self):
        cfg = load_scoring_config()
        assert cfg['explanation']['max_tokens'] == 120
        assert cfg['ideal_customer_profile']

    def test_missing_yaml_uses_defaults(self):
        with patch('leadqual.pipeline.scoring.open', side_effect=FileNotFoundError, create=True):
            cfg = load_scoring_config()
        assert cfg['version'] == 'default'

    def test_cached(self):
        assert load_scoring_config() is load_scoring_config()


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

class TestRankLeads:
    """rank_leads(embeddings, ideal_vec): best fit first."""

    def test_sorted_descending(self):
        ranking = rank_leads({
            'weak': [0.0, 1.0],
            'strong': [1.0, 0.0],
            'middling': [1.0, 1.0],
        }, [1.0, 0.0])
        assert [lead_id for lead_id, _ in ranking] == ['strong', 'middling', 'weak']
        assert ranking[0][1] == pytest.approx(1.0)
        assert ranking[1][1] == pytest.approx(0.5 ** 0.5)
        assert ranking[2][1] == pytest.approx(0.0)

    def test_ties_keep_input_order(self):
        ranking = rank_leads({3: [2.0, 0.0], 1: [1.0, 0.0], 2: [0.0, 1.0]}, [1.0, 0.0])
        assert [lead_id for lead_id, _ in ranking] == [3, 1, 2]

    def test_zero_vector_ranks_last(self):
        ranking = rank_leads({'a': [0.0, 0.0], 'b': [-1.0, 0.1]}, [1.0, 0.0])
        assert ranking[0][0] == 'a'
        assert ranking[0][1] == 0.0
        assert ranking[1][1] < 0

    def test_empty(self):
        assert rank_leads({}, [1.0, 0.0]) == []

    def test_dimension_mismatch_on_one_entry_raises(self):
        with pytest.raises(DimensionMismatch):
            rank_leads({1: [1.0, 0.0], 2: [1.0, 0.0, 0.0]}, [1.0, 0.0])


class TestIdealCustomerTextFor:

    def test_industry_and_use_case(self):
        assert ideal_customer_text_for('Healthcare', 'patient intake automation') == \
            'Ideal customer profile for Healthcare with use case: patient intake automation'

    def test_strips_whitespace(self):
        assert ideal_customer_text_for('  Fintech ', ' fraud review\n') == \
            'Ideal customer profile for Fintech with use case: fraud review'

    def test_one_side_missing(self):
        assert ideal_customer_text_for('', 'data pipelines').startswith(
            'Ideal customer profile for any industry')

    def test_both_blank_rejected(self):
        with pytest.raises(ValueError):
            ideal_customer_text_for(' ', None)


# ---------------------------------------------------------------------------
# LeadScorer.score
# ---------------------------------------------------------------------------

class TestLeadScorer:

    @pytest.mark.asyncio
    async def test_end_to_end_high_tier(self, sample_lead):
        embed = _embedder_for(0.82)
        generate = AsyncMock(return_value="CTO at TechCorp with budget authority.")
        scorer = LeadScorer(embed=embed, generate=generate)

        result = await scorer.score(sample_lead)

        assert isinstance(result, ScoreResult)
        assert result.tier == 'high'
        assert result.similarity == pytest.approx(0.82)
        assert result.explanation == "CTO at TechCorp with budget authority."

    @pytest.mark.asyncio
    async def test_embeds_lead_and_default_ideal_text(self, sample_lead):
        embed = _embedder_for(0.6)
        scorer = LeadScorer(embed=embed, generate=AsyncMock(return_value='ok'))

        await scorer.score(sample_lead)

        texts = [c.args[0] for c in embed.call_args_list]
        assert len(texts) == 2
        assert build_lead_profile_text(sample_lead) in texts
        assert default_ideal_customer_text() in texts

    @pytest.mark.asyncio
    async def test_event_criteria_replace_default(self, sample_lead):
        embed = _embedder_for(0.6)
        scorer = LeadScorer(embed=embed, generate=AsyncMock(return_value='ok'))

        await scorer.score(sample_lead, 'Hospital procurement leads')

        texts = [c.args[0] for c in embed.call_args_list]
        assert 'Hospital procurement leads' in texts
        assert default_ideal_customer_text() not in texts

    @pytest.mark.asyncio
    async def test_explanation_prompt_carries_tier(self, sample_lead):
        generate = AsyncMock(return_value='ok')
        scorer = LeadScorer(embed=_embedder_for(0.3), generate=generate)

        result = await scorer.score(sample_lead)

        assert result.tier == 'low'
        prompt = generate.call_args.args[0]
        assert '"low"' in prompt
        assert 'TechCorp' in prompt
        assert generate.call_args.kwargs['max_tokens'] == 120

    @pytest.mark.asyncio
    async def test_long_explanation_truncated(self, sample_lead):
        scorer = LeadScorer(embed=_embedder_for(0.6), generate=AsyncMock(return_value='x' * 450))
        result = await scorer.score(sample_lead)
        assert len(result.explanation) == 200
        assert result.explanation.endswith('...')

    @pytest.mark.asyncio
    async def test_empty_explanation_gets_placeholder(self, sample_lead):
        scorer = LeadScorer(embed=_embedder_for(0.6), generate=AsyncMock(return_value=''))
        result = await scorer.score(sample_lead)
        assert result.explanation == 'No explanation available'


class TestLeadScorerNeverRaises:
    """Every dependency failure degrades to FALLBACK_RESULT."""

    @pytest.mark.asyncio
    async def test_embedding_failure(self, sample_lead):
        scorer = LeadScorer(
            embed=AsyncMock(side_effect=RuntimeError("embedding provider down")),
            generate=AsyncMock(return_value='ok'),
        )
        result = await scorer.score(sample_lead)
        assert result == FALLBACK_RESULT
        assert result.tier == 'medium'
        assert result.similarity == 0.5
        assert result.explanation == "Lead could not be automatically scored. Please review manually."

    @pytest.mark.asyncio
    async def test_similarity_failure(self, sample_lead):
        async def embed(text):
            return [1.0, 0.0] if text.startswith('Name:') else [1.0, 0.0, 0.0]

        scorer = LeadScorer(embed=embed, generate=AsyncMock(return_value='ok'))
        assert await scorer.score(sample_lead) == FALLBACK_RESULT

    @pytest.mark.asyncio
    async def test_explanation_failure(self, sample_lead):
        scorer = LeadScorer(
            embed=_embedder_for(0.9),
            generate=AsyncMock(side_effect=TimeoutError("generation timed out")),
        )
        assert await scorer.score(sample_lead) == FALLBACK_RESULT

    @pytest.mark.asyncio
    async def test_malformed_lead(self):
        scorer = LeadScorer(embed=_embedder_for(0.9), generate=AsyncMock(return_value='ok'))
        assert await scorer.score({'first_name': object(), 'last_name': 3}) == FALLBACK_RESULT

    @pytest.mark.asyncio
    async def test_default_clients_without_api_key(self, sample_lead):
        with patch('leadqual.services.openai_client.get_openai_client', return_value=None):
            result = await LeadScorer().score(sample_lead)
        assert result == FALLBACK_RESULT

    def test_dimension_mismatch_still_raised_by_vector_math(self):
        from leadqual.services.vector_math import cosine_similarity
        with pytest.raises(DimensionMismatch):
            cosine_similarity([1.0], [1.0, 2.0])
