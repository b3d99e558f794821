from codewatch.processing.changes import ChangeAggregator, FileRecord


def test_last_write_wins():
    aggregator = ChangeAggregator()
    aggregator.record("/r/a.go", "v1", ".go")
    aggregator.record("/r/b.py", "b", ".py")
    aggregator.record("/r/a.go", "v2", ".go")

    batch = aggregator.drain()

    assert len(batch) == 2
    assert FileRecord("/r/a.go", ".go", "v2") in batch
    assert aggregator.stats['replaced'] == 1


def test_drain_resets():
    aggregator = ChangeAggregator()
    aggregator.record("/r/a.go", "x", ".go")
    assert "/r/a.go" in aggregator
    assert len(aggregator) == 1

    assert len(aggregator.drain()) == 1
    assert len(aggregator) == 0
    assert aggregator.drain() == []
    assert aggregator.stats['drained_batches'] == 1


def test_to_payload_field_names():
    record = FileRecord(path="/r/a.go", extension=".go", content="package a")
    assert record.to_payload() == {
        'file_path': "/r/a.go",
        'file_extension': ".go",
        'data_chunks': "package a",
    }
