from placefinder.converter import LocationDataConverter
from placefinder.models import LocationOption
from placefinder.query import QueryEngine

def test_search_results(sample_index):
    results = QueryEngine(sample_index).search('ktm')
    df = LocationDataConverter.search_results(results)
    assert list(df.columns) == ['id', 'name', 'type', 'score', 'matchType', 'fullPath', 'region', 'subRegion', 'highlight']
    assert list(df.index) == [1, 2]
    assert df.index.name == 'rank'
    assert df.loc[1, 'name'] == 'Kathmandu Metropolitan City'
    assert df.loc[2, 'type'] == 'sub_region'
    assert df.loc[1, 'score'] == 100
    assert df.loc[1, 'highlight'] is None

    df = LocationDataConverter.search_results(QueryEngine(sample_index).search('jhap'), rank_as_index=False)
    assert list(df.index) == [0]
    assert df.loc[0, 'highlight'] == 'Jhap'

def test_empty_results():
    df = LocationDataConverter.search_results([])
    assert df.empty
    assert 'matchType' in df.columns

def test_options():
    df = LocationDataConverter.options([LocationOption('koshi', 'Koshi', 'koshi')])
    assert df.to_dict('records') == [{'id': 'koshi', 'displayName': 'Koshi', 'value': 'koshi', 'parent': None}]
    assert LocationDataConverter.options([]).empty

def test_locations(sample_index):
    df = LocationDataConverter.locations(sample_index.locations)
    assert len(df) == 15
    row = df[df['id'] == 'jhapa'].iloc[0]
    assert row['phoneticKey'] == 'jhp'
    assert row['terms'] == 1
    assert row['keywords'] == 3
    assert LocationDataConverter.locations([]).empty

def test_performance_stats():
    df = LocationDataConverter.performance_stats({'total_locations': 15, 'index_size': 40})
    assert df.loc['total_locations', 'value'] == 15
    assert list(df.columns) == ['value']
