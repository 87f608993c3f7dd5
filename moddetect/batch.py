"""
Batch Detection Module
======================

Runs the modularity detection on several networks concurrently and
collects the results in a pandas DataFrame.

Each network gets its own `ModularityNetwork`, detector and divider copy;
the settings are shared read-only. A failing network is reported in its row
(status 'failed' and the error message) and never stops the batch.

Author: Modularity Detection Team
"""

import json
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Union

import networkx as nx
import pandas as pd
from tqdm import tqdm

from .detection import DetectionResult, DetectionStatus, run_detection
from .exceptions import ModDetectError
from .network import load_network
from .settings import DetectionSettings


NetworkSource = Union[str, Path, nx.Graph]

RESULT_COLUMNS = [
    'network_name', 'method', 'status', 'error',
    'modularity', 'num_indivisible_communities', 'num_communities', 'tree_depth',
    'contribution_global_mvm', 'num_evaluations', 'computation_time',
]


def _named_sources(networks: Union[Mapping[str, NetworkSource], Sequence[NetworkSource]]) -> List[tuple]:
    if isinstance(networks, Mapping):
        return [(str(name), source) for name, source in networks.items()]

    named = []
    for i, source in enumerate(networks):
        if isinstance(source, nx.Graph):
            name = source.graph.get('name') or f"network_{i + 1}"
        else:
            name = Path(source).stem
        named.append((name, source))
    return named


def _detect(name: str, source: NetworkSource, settings: DetectionSettings) -> DetectionResult:
    """Detection of one network; errors become a FAILED result."""
    try:
        if isinstance(source, nx.Graph):
            graph = source
        else:
            graph = load_network(source, name=name)
        return run_detection(graph, settings, name=name)
    except Exception as e:
        error = str(e) if isinstance(e, (ModDetectError, OSError)) else f"{type(e).__name__}: {e}"
        return DetectionResult(network_name=name, method=settings.method_string(),
                               status=DetectionStatus.FAILED, error=error)


def run_batch(networks: Union[Mapping[str, NetworkSource], Sequence[NetworkSource]],
              settings: Optional[DetectionSettings] = None,
              return_results: bool = False):
    """
    Detect the communities of several networks.

    Parameters
    ----------
    networks : Mapping[str, source] or Sequence[source]
        Networks given as NetworkX graphs or edge list files. With a
        sequence, names are taken from the graph name or the file name.
    settings : DetectionSettings, optional
        Settings shared by all the detections.
        `num_concurrent_detections` networks are processed at the same
        time (at most the number of processors).
    return_results : bool
        Also return the list of `DetectionResult`.

    Returns
    -------
    pd.DataFrame or Tuple[pd.DataFrame, List[DetectionResult]]
        One row per network, in input order.
    """
    settings = (settings or DetectionSettings()).validate()
    sources = _named_sources(networks)
    max_workers = max(1, min(settings.num_concurrent_detections, os.cpu_count() or 1))

    if settings.verbose:
        print("\n" + "=" * 60)
        print("BATCH MODULARITY DETECTION")
        print("=" * 60)
        print(f"Networks: {len(sources)}")
        print(f"Method: {settings.method_string()}")
        print(f"Concurrent detections: {max_workers}")

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(_detect, name, source, settings) for name, source in sources]
        results = [future.result() for future in
                   tqdm(futures, desc="Networks", disable=not settings.verbose)]

    df = results_to_dataframe(results)

    if settings.verbose:
        num_ok = int((df['status'] == DetectionStatus.OK.value).sum()) if len(df) else 0
        print(f"\nDone: {num_ok}/{len(results)} networks processed successfully")
        print("=" * 60)

    if return_results:
        return df, results
    return df


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def results_to_dataframe(results: List[DetectionResult]) -> pd.DataFrame:
    rows = [result.to_dict() for result in results]
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def save_results(results: Union[pd.DataFrame, List[DetectionResult]], filepath: str,
                 include_communities: bool = False):
    """Save results to JSON file."""
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    if isinstance(results, pd.DataFrame):
        data = results.to_dict(orient='records')
    else:
        data = [result.to_dict(include_communities) for result in results]
    with open(filepath, 'w') as f:
        json.dump(data, f, indent=2)


def results_to_csv(results: Union[pd.DataFrame, List[DetectionResult]], filepath: str):
    """
    Write results to CSV, one row per network.

    Parameters
    ----------
    results : pd.DataFrame or List[DetectionResult]
        Output of `run_batch`.
    filepath : str
        Output CSV path.
    """
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    if not isinstance(results, pd.DataFrame):
        results = results_to_dataframe(results)
    results.to_csv(filepath, index=False)


def load_results(filepath: str) -> pd.DataFrame:
    """Read results written by `save_results` or `results_to_csv`."""
    if str(filepath).endswith('.json'):
        with open(filepath, 'r') as f:
            return pd.DataFrame(json.load(f))
    return pd.read_csv(filepath)
