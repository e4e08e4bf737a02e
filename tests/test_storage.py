import json

import pytest

from recognition.classifier import OnlineClassifier
from recognition.errors import CorruptDataError
from recognition.storage import (
    LocalModelStore,
    deserialize,
    export_filename,
    export_to_file,
    import_from_file,
    latest_export,
    load_classifier,
    save_classifier,
    serialize,
)


def vec(x):
    return tuple(x + i * 0.001 for i in range(63))


@pytest.fixture
def model():
    return {
        'A': [vec(0.1), vec(0.2), vec(0.3)],
        'C': [vec(-1.5)],
        'Z': [],
    }


@pytest.fixture
def store(tmp_path):
    return LocalModelStore(tmp_path / "data")


def test_serialize_flattens_with_shape(model):
    data = serialize(model)
    assert set(data) == {'A', 'C'}
    assert data['A']['shape'] == [3, 63]
    assert len(data['A']['values']) == 3 * 63
    assert data['A']['values'][:2] == [0.1, 0.1 + 0.001]


def test_round_trip_preserves_order_and_values(model):
    restored = deserialize(serialize(model))
    assert restored == {'A': model['A'], 'C': model['C']}


def test_round_trip_through_json(model):
    restored = deserialize(json.loads(json.dumps(serialize(model))))
    assert restored['A'] == model['A']


@pytest.mark.parametrize("data", [
    {'A': {'values': [0.0] * 62, 'shape': [1, 63]}},
    {'A': {'values': [0.0] * 62, 'shape': [1, 62]}},
    {'A': {'values': [0.0] * 126, 'shape': [2, 63, 1]}},
    {'A': {'values': [0.0] * 63}},
    {'A': {'shape': [1, 63]}},
    {'A': {'values': ['x'] * 63, 'shape': [1, 63]}},
    {'A': [0.0] * 63},
    {'a': {'values': [0.0] * 63, 'shape': [1, 63]}},
    {'0': {'values': [0.0] * 63, 'shape': [1, 63]}},
    [1, 2, 3],
])
def test_corrupt_data_rejected(data):
    with pytest.raises(CorruptDataError):
        deserialize(data)


def test_store_load_nothing(store):
    assert store.load() is None
    assert not store.exists()


def test_store_save_load_clear(store, model):
    store.save(serialize(model))
    assert store.exists()
    assert store.path.name == "signlang-tutor-classifier.json"
    assert deserialize(store.load()) == {'A': model['A'], 'C': model['C']}

    store.clear()
    assert store.load() is None
    store.clear()  # no error when already gone


def test_save_and_load_classifier(store, model):
    source = OnlineClassifier()
    source.set_dataset(model)
    save_classifier(source, store)

    target = OnlineClassifier()
    assert load_classifier(target, store) is True
    assert target.get_dataset() == source.get_dataset()


def test_load_classifier_without_data(store):
    assert load_classifier(OnlineClassifier(), store) is False


def test_export_filename():
    assert export_filename(1700000000.5) == "signlang-classifier-1700000000500.json"


def test_export_writes_portable_form(tmp_path, model):
    classifier = OnlineClassifier()
    classifier.set_dataset(model)

    path = export_to_file(classifier, tmp_path / "exports", now=1700000000.5)
    assert path.name == "signlang-classifier-1700000000500.json"
    assert deserialize(json.loads(path.read_text())) == classifier.get_dataset()


def test_latest_export_picks_newest_timestamp(tmp_path, model):
    classifier = OnlineClassifier()
    classifier.set_dataset(model)

    assert latest_export(tmp_path / "missing") is None
    export_to_file(classifier, tmp_path, now=1700000000.0)
    newest = export_to_file(classifier, tmp_path, now=1800000000.0)
    export_to_file(classifier, tmp_path, now=1750000000.0)
    (tmp_path / "signlang-classifier-backup.json").write_text("{}")

    assert latest_export(tmp_path) == newest


def test_import_replaces_model_and_persists(store, model):
    classifier = OnlineClassifier()
    classifier.add_example(vec(9.0), 'Q')

    payload = json.dumps(serialize(model)).encode()
    assert import_from_file(classifier, payload, store) == 4

    assert classifier.get_class_counts() == {'A': 3, 'C': 1}
    assert deserialize(store.load()) == classifier.get_dataset()


@pytest.mark.parametrize("payload", [
    b'{"A": {"values": [1.0, 2.0], "shape": [1, 63]}}',
    b'not json at all',
    b'\xff\xfe\x00',
])
def test_corrupt_import_leaves_model_untouched(store, payload):
    classifier = OnlineClassifier()
    classifier.add_example(vec(9.0), 'Q')
    before = classifier.get_dataset()

    with pytest.raises(CorruptDataError):
        import_from_file(classifier, payload, store)

    assert classifier.get_dataset() == before
    assert store.load() is None
