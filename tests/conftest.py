import time

import pytest
from placefinder import MappingShardSource, create_search_index

SAMPLE_HIERARCHY = {
    'koshi': {
        'jhapa': ['mechinagar municipality', 'damak municipality'],
        'sunsari': ['dharan sub-metropolitian city'],
        'ilam': ['ilam municipality'],
    },
    'bagmati': {
        'kathmandu': ['kathmandu metropolitian city', 'kirtipur municipality'],
        'lalitpur': ['lalitpur metropolitian city', 'godawari municipality'],
    },
}

SAMPLE_TREE = [
    {'id': 'koshi', 'name': 'Koshi', 'children': [
        {'id': 'jhapa', 'name': 'Jhapa', 'children': [
            {'id': 'mechinagar municipality', 'name': 'Mechinagar Municipality'},
            {'id': 'damak municipality', 'name': 'Damak Municipality'},
        ]},
        {'id': 'sunsari', 'name': 'Sunsari', 'children': [
            {'id': 'dharan sub-metropolitian city', 'name': 'Dharan Sub-Metropolitan City'},
        ]},
        {'id': 'ilam', 'name': 'Ilam', 'children': [
            {'id': 'ilam municipality', 'name': 'Ilam Municipality'},
        ]},
    ]},
    {'id': 'bagmati', 'name': 'Bagmati', 'children': [
        {'id': 'kathmandu', 'name': 'Kathmandu', 'children': [
            {'id': 'kathmandu metropolitian city', 'name': 'Kathmandu Metropolitan City'},
            {'id': 'kirtipur municipality', 'name': 'Kirtipur Municipality'},
        ]},
        {'id': 'lalitpur', 'name': 'Lalitpur', 'children': [
            {'id': 'lalitpur metropolitian city', 'name': 'Lalitpur Metropolitan City'},
            {'id': 'godawari municipality', 'name': 'Godawari Municipality'},
        ]},
    ]},
]

class RecordingSource(MappingShardSource):
    """In-memory shards that record every read and can simulate slow storage."""
    def __init__(self, documents, delay=0.):
        super().__init__(documents)
        self.delay = delay
        self.reads = []

    def _read(self, kind, key, path):
        self.reads.append(path)
        if self.delay:
            time.sleep(self.delay)
        return super()._read(kind, key, path)

@pytest.fixture
def sample_source():
    return RecordingSource.from_hierarchy(SAMPLE_HIERARCHY)

@pytest.fixture
def sample_index():
    return create_search_index(SAMPLE_TREE)
