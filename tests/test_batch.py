"""Tests for the concurrent detection of several networks."""

import pytest

from moddetect import DetectionSettings, run_batch, save_results, results_to_csv, load_results
from moddetect.batch import RESULT_COLUMNS
from moddetect.benchmarks import clique_ring, write_benchmark


@pytest.fixture
def networks(two_cliques, cliques16, tmp_path):
    """Two graphs, one edge list file and one missing file."""
    ring_path, _ = write_benchmark(clique_ring(4, 4), str(tmp_path / 'networks'))
    return {
        'two_cliques': two_cliques,
        'cliques16': cliques16,
        'ring': ring_path,
        'missing': str(tmp_path / 'missing.tsv'),
    }


class TestRunBatch:

    def test_results_in_input_order(self, networks):
        settings = DetectionSettings(num_concurrent_detections=2)
        df, results = run_batch(networks, settings, return_results=True)

        assert list(df.columns) == RESULT_COLUMNS
        assert list(df['network_name']) == ['two_cliques', 'cliques16', 'ring', 'missing']
        assert list(df['status']) == ['ok', 'ok', 'ok', 'failed']
        assert df.loc[0, 'modularity'] == pytest.approx(20.0 / 21.0 - 0.5)
        assert 'not found' in df.loc[3, 'error']
        assert results[1].communities

    def test_unreadable_file_does_not_stop_batch(self, karate, tmp_path):
        bad_path = tmp_path / 'bad.tsv'
        bad_path.write_bytes(b'\xff\xfe\x00a\tb\n')
        df = run_batch({'karate': karate, 'bad': str(bad_path)})

        assert list(df['status']) == ['ok', 'failed']
        assert df.loc[0, 'modularity'] > 0.3
        assert 'UTF-8' in df.loc[1, 'error']

    def test_unexpected_error_is_reported(self, two_cliques, monkeypatch):
        def broken_load(path, name=None):
            raise RuntimeError('disk on fire')

        monkeypatch.setattr('moddetect.batch.load_network', broken_load)
        df = run_batch({'two_cliques': two_cliques, 'broken': 'broken.tsv'})

        assert list(df['status']) == ['ok', 'failed']
        assert df.loc[1, 'error'] == 'RuntimeError: disk on fire'

    def test_sequence_names(self, two_cliques, tmp_path):
        path, _ = write_benchmark(clique_ring(3, 4), str(tmp_path))
        df = run_batch([two_cliques, path])
        assert list(df['network_name']) == ['two_cliques', 'cliqueRing_3_4']
        assert (df['status'] == 'ok').all()

    def test_verbose(self, two_cliques, capsys):
        run_batch([two_cliques], DetectionSettings(verbose=True))
        out = capsys.readouterr().out
        assert 'BATCH MODULARITY DETECTION' in out
        assert '1/1 networks processed successfully' in out


class TestResultFiles:

    def test_json(self, two_cliques, tmp_path):
        df, results = run_batch([two_cliques], return_results=True)
        path = str(tmp_path / 'out' / 'results.json')
        save_results(results, path)
        loaded = load_results(path)
        assert loaded.loc[0, 'network_name'] == 'two_cliques'
        assert loaded.loc[0, 'modularity'] == pytest.approx(df.loc[0, 'modularity'])

    def test_json_with_communities(self, two_cliques, tmp_path):
        _, results = run_batch([two_cliques], return_results=True)
        path = str(tmp_path / 'results.json')
        save_results(results, path, include_communities=True)
        assert len(load_results(path).loc[0, 'communities']) == 10

    def test_csv(self, two_cliques, tmp_path):
        df = run_batch([two_cliques])
        path = str(tmp_path / 'results.csv')
        results_to_csv(df, path)
        loaded = load_results(path)
        assert list(loaded.columns) == RESULT_COLUMNS
        assert loaded.loc[0, 'status'] == 'ok'
