"""End-to-end check: seed the demo user, aggregate, then ask for suggestions."""

from memory_engine.engine.batch import run_aggregation_cycle
from memory_engine.engine.selector import ContextualSelector
from memory_engine.scripts.seed_demo import DEMO_USER, seed


def test_seeded_user_flows_through_engine(r, task_store, profile_store, companion):
    seed(r=r)

    report = run_aggregation_cycle(task_store, profile_store)
    assert report.to_dict()["results"] == [{"userId": DEMO_USER, "success": True}]

    profile = profile_store.get_profile(DEMO_USER)
    assert profile.category_preferences["today"] > 0
    assert "stressed_day" in profile.emotional_triggers
    assert profile_store.get_focus_preferences(DEMO_USER)["seasonal_weight"]["monday_reset"] == {
        "category": "admin", "confidence": 1.0, "weight": 0.1,
    }

    result = ContextualSelector(task_store, profile_store, companion).suggest(DEMO_USER)
    assert "error" not in result
    assert 1 <= len(result["suggestedTasks"]) <= 3
    assert result["context"]["emotionalState"]["fatigue"] == 74


def test_reseed_replaces_previous_data(r, task_store):
    seed(r=r)
    seed(r=r)
    assert len(task_store.fetch_tasks(DEMO_USER)) == 10
