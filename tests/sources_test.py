import asyncio
import json
import time

import pytest
import requests
from placefinder.sources import (
    DirectoryShardSource, HttpShardSource, MappingShardSource, ShardKind, ShardLoadFailed, ShardNotFound, shard_filename,
)

class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.payload = payload

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON object could be decoded")
        return self.payload

class FakeSession:
    def __init__(self, responses):
        self.responses = {url: list(items) for url, items in responses.items()}
        self.proxies = {}
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append(url)
        queue = self.responses.get(url)
        if not queue:
            return FakeResponse(404)
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

BASE_URL = 'https://data.example.com/locations'

@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr('placefinder.sources.sleep', calls.append)
    return calls

def test_shard_paths():
    assert ShardKind.ROOT.path() == 'regions.json'
    assert ShardKind.REGION.path('koshi') == 'sub_regions/koshi.json'
    assert ShardKind.SUB_REGION.path('western-rukum') == 'localities/western-rukum.json'
    for key in ['', None, '../regions', 'a/b', '.hidden']:
        with pytest.raises(ShardLoadFailed):
            ShardKind.SUB_REGION.path(key)

def test_shard_filename():
    assert shard_filename(' Ilam ') == 'illam'
    assert shard_filename('western rukum') == 'western-rukum'
    assert shard_filename('jhapa') == 'jhapa'
    assert shard_filename('ilam', {}) == 'ilam'
    assert shard_filename('') == ''

def test_bundled_data():
    source = DirectoryShardSource()
    regions = source.load_shard(ShardKind.ROOT)
    assert regions[0] == 'koshi'
    assert len(regions) == 7
    assert 'jhapa' in source.load_shard(ShardKind.REGION, 'koshi')
    assert 'ilam municipality' in source.load_shard(ShardKind.SUB_REGION, 'illam')
    with pytest.raises(ShardNotFound):
        source.load_shard(ShardKind.SUB_REGION, 'ilam')

def test_directory_source_errors(tmp_path):
    source = DirectoryShardSource(tmp_path)
    with pytest.raises(ShardNotFound):
        source.load_shard(ShardKind.ROOT)

    (tmp_path / 'regions.json').write_text('{"regions": [', encoding='utf-8')
    with pytest.raises(ShardLoadFailed):
        source.load_shard(ShardKind.ROOT)

    (tmp_path / 'regions.json').write_text(json.dumps({'regions': 'koshi'}), encoding='utf-8')
    with pytest.raises(ShardLoadFailed):
        source.load_shard(ShardKind.ROOT)

    (tmp_path / 'regions.json').write_text(json.dumps({'regions': ['koshi', 1]}), encoding='utf-8')
    with pytest.raises(ShardLoadFailed):
        source.load_shard(ShardKind.ROOT)

    (tmp_path / 'regions.json').write_text(json.dumps({'regions': ['koshi']}), encoding='utf-8')
    assert source.load_shard(ShardKind.ROOT) == ['koshi']

def test_mapping_source_from_hierarchy():
    source = MappingShardSource.from_hierarchy({'koshi': {'ilam': ['mai municipality'], 'jhapa': []}})
    assert source.load_shard(ShardKind.ROOT) == ['koshi']
    assert source.load_shard(ShardKind.REGION, 'koshi') == ['ilam', 'jhapa']
    assert source.load_shard(ShardKind.SUB_REGION, 'illam') == ['mai municipality']
    assert source.load_shard(ShardKind.SUB_REGION, 'jhapa') == []
    with pytest.raises(ShardNotFound):
        source.load_shard(ShardKind.REGION, 'bagmati')

def test_http_source():
    session = FakeSession({f'{BASE_URL}/regions.json': [FakeResponse(200, {'regions': ['koshi']})]})
    source = HttpShardSource(BASE_URL + '/', session=session)
    assert source.load_shard(ShardKind.ROOT) == ['koshi']
    assert session.calls == [f'{BASE_URL}/regions.json']

    with pytest.raises(ShardNotFound):
        source.load_shard(ShardKind.REGION, 'koshi')

def test_http_source_retries(sleeps):
    url = f'{BASE_URL}/sub_regions/koshi.json'
    session = FakeSession({url: [FakeResponse(503), FakeResponse(200, {'sub_regions': ['jhapa']})]})
    source = HttpShardSource(BASE_URL, max_retries=3, session=session)
    assert source.load_shard(ShardKind.REGION, 'koshi') == ['jhapa']
    assert len(session.calls) == 2
    assert sleeps == [1]

def test_http_source_gives_up(sleeps):
    session = FakeSession({f'{BASE_URL}/regions.json': [FakeResponse(500)]})
    source = HttpShardSource(BASE_URL, max_retries=2, session=session)
    with pytest.raises(ShardLoadFailed) as e:
        source.load_shard(ShardKind.ROOT)
    assert not isinstance(e.value, ShardNotFound)
    assert len(session.calls) == 2

    session = FakeSession({f'{BASE_URL}/regions.json': [requests.exceptions.ConnectionError('refused')]})
    source = HttpShardSource(BASE_URL, max_retries=0, session=session)
    with pytest.raises(ShardLoadFailed):
        source.load_shard(ShardKind.ROOT)
    assert len(session.calls) == 1

def test_http_source_bad_responses():
    session = FakeSession({
        f'{BASE_URL}/regions.json': [FakeResponse(200)],
        f'{BASE_URL}/sub_regions/koshi.json': [FakeResponse(403)],
        f'{BASE_URL}/sub_regions/bagmati.json': [FakeResponse(200, {'regions': []})],
    })
    source = HttpShardSource(BASE_URL, session=session)
    with pytest.raises(ShardLoadFailed):
        source.load_shard(ShardKind.ROOT)
    with pytest.raises(ShardLoadFailed):
        source.load_shard(ShardKind.REGION, 'koshi')
    with pytest.raises(ShardLoadFailed):
        source.load_shard(ShardKind.REGION, 'bagmati')

def test_http_source_proxy():
    session = FakeSession({})
    source = HttpShardSource(BASE_URL, proxy='http://proxy.local:3128', session=session)
    assert session.proxies == {'http': 'http://proxy.local:3128', 'https': 'http://proxy.local:3128'}
    source.set_proxy()
    assert session.proxies == {}
    source.set_proxy({'https': 'http://other.local:8080'})
    assert session.proxies == {'https': 'http://other.local:8080'}

class TimestampingSession(FakeSession):
    def __init__(self, responses):
        super().__init__(responses)
        self.times = []

    def get(self, url, timeout=None):
        self.times.append(time.time())
        return super().get(url, timeout)

def test_http_source_throttles_concurrent_loads():
    session = TimestampingSession({
        f'{BASE_URL}/sub_regions/{region}.json': [FakeResponse(200, {'sub_regions': [region]})]
        for region in ['koshi', 'madhesh', 'bagmati', 'gandaki']
    })
    source = HttpShardSource(BASE_URL, request_delay=0.2, session=session)

    async def load_all():
        return await asyncio.gather(*(
            asyncio.to_thread(source.load_shard, ShardKind.REGION, region)
            for region in ['koshi', 'madhesh', 'bagmati', 'gandaki']
        ))

    results = asyncio.run(load_all())
    assert results == [['koshi'], ['madhesh'], ['bagmati'], ['gandaki']]
    times = sorted(session.times)
    gaps = [later - earlier for earlier, later in zip(times, times[1:])]
    assert len(gaps) == 3
    assert all(gap >= 0.18 for gap in gaps)
