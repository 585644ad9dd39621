import pytest
from placefinder.index import create_search_index
from placefinder.models import LocationKind, MatchType
from placefinder.suggestions import SuggestionContext, SuggestionEngine

@pytest.fixture
def engine(sample_index):
    return SuggestionEngine(sample_index)

def test_popular_locations_for_short_input(engine):
    for query in ['', ' ', 'k', None]:
        results = engine.suggest(query)
        assert [r.name for r in results] == ['Kathmandu', 'Lalitpur', 'Dharan Sub-Metropolitan City']
        assert all(r.match_type is MatchType.POPULAR and r.score == 60 for r in results)

def test_popular_locations_fall_back_to_terms():
    tree = {'id': 'gandaki', 'name': 'Gandaki', 'children': [
        {'id': 'kaski', 'name': 'Kaski', 'children': [{'id': 'pokhara', 'name': 'Pokhara Metropolitan City'}]},
    ]}
    results = SuggestionEngine(create_search_index(tree), popular=['pokhara', 'dharan']).popular_locations()
    assert [r.name for r in results] == ['Pokhara Metropolitan City']

def test_contextual_suggestions(engine):
    results = engine.suggest('ka', {'previous_region': 'bagmati'})
    assert results[0].name == 'Kathmandu'
    assert results[0].kind is LocationKind.SUB_REGION
    assert results[0].match_type is MatchType.CONTEXTUAL
    assert results[0].score == 80

    without_context = engine.suggest('ka')
    kathmandu = [r for r in without_context if r.name == 'Kathmandu'][0]
    assert kathmandu.match_type is MatchType.PREFIX
    assert kathmandu.score == 73

def test_context_only_boosts(engine):
    # Exact hits already outrank the contextual score
    results = engine.suggest('kathmandu', SuggestionContext(previous_region='bagmati'))
    assert results[0].match_type is MatchType.EXACT
    assert all(r.match_type is not MatchType.CONTEXTUAL for r in results)

def test_autocomplete(engine):
    results = engine.autocomplete('mechi')
    assert [r.name for r in results] == ['Mechinagar Municipality']
    assert results[0].match_type is MatchType.AUTOCOMPLETE
    assert results[0].score == 40
    assert engine.autocomplete('zzz') == []

def test_suggestions_are_unique_and_capped(engine):
    results = engine.suggest('mechi')
    keys = [r.key for r in results]
    assert len(keys) == len(set(keys))
    assert results[0].name == 'Mechinagar Municipality'
    assert results[0].match_type is MatchType.PREFIX

    names = [f'Tol {i}' for i in range(20)]
    tree = {'id': 'test', 'name': 'Test', 'children': [
        {'id': 'town', 'name': 'Town', 'children': [{'id': name.lower(), 'name': name} for name in names]},
    ]}
    assert len(SuggestionEngine(create_search_index(tree)).suggest('tol')) == 10

def test_suggestion_context():
    assert SuggestionContext.from_value(None).previous_region is None
    assert SuggestionContext.from_value({'region': 'koshi'}).previous_region == 'koshi'
    context = SuggestionContext('koshi')
    assert SuggestionContext.from_value(context) is context
    with pytest.raises(ValueError):
        SuggestionContext.from_value(42)
