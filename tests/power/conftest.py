"""
Shared fixtures for power analysis tests.

Provides study designs for the common guided and matrix mode scenarios
and fake power engines with deterministic behaviour (instant, blocking,
raising).
"""

import threading

import numpy as np
import pytest

from pyglmmpower.power import (
    BetweenParticipantFactor,
    ClusterNode,
    Covariance,
    CovarianceType,
    EngineResult,
    FunctionEngine,
    Hypothesis,
    HypothesisBetweenMapping,
    HypothesisRepeatedMeasuresMapping,
    HypothesisType,
    PowerMethod,
    RepeatedMeasuresNode,
    ResponseNode,
    StatisticalTest,
    StudyDesign,
    TrendType,
    ViewType,
    RESPONSES_COVARIANCE_LABEL,
)
from pyglmmpower.core.capabilities import CAPABILITY_CANCELLATION


# =====================================================================
# Study designs
# =====================================================================


def sweep(**overrides):
    """Single-point sweep lists, with overrides."""
    lists = dict(
        statistical_tests=[StatisticalTest.HLT],
        alphas=[0.05],
        sample_sizes=[10],
        beta_scales=[1.0],
        sigma_scales=[1.0],
    )
    lists.update(overrides)
    return lists


@pytest.fixture
def two_group_design():
    """Guided: one factor with 2 groups, one response, main effect."""
    return StudyDesign(
        between_factors=[BetweenParticipantFactor("treatment", ["placebo", "drug"])],
        responses=[ResponseNode("score")],
        covariances=[
            Covariance(RESPONSES_COVARIANCE_LABEL, CovarianceType.UNSTRUCTURED_COVARIANCE,
                       matrix=[[4.0]]),
        ],
        hypotheses=[Hypothesis(HypothesisType.MAIN_EFFECT,
                               between_mappings=[HypothesisBetweenMapping("treatment")])],
        matrices={"beta": [[0.0], [1.0]]},
        **sweep(),
    )


@pytest.fixture
def repeated_design():
    """Guided: 3 groups x 3 unequally spaced times, LEAR covariance,
    group by linear time interaction."""
    return StudyDesign(
        between_factors=[BetweenParticipantFactor("group", ["a", "b", "c"])],
        repeated_measures=[RepeatedMeasuresNode("time", 3, spacing=[1.0, 2.0, 4.0])],
        responses=[ResponseNode("y")],
        covariances=[
            Covariance("time", CovarianceType.LEAR_CORRELATION, rho=0.5, delta=0.3,
                       standard_deviations=[1.0, 1.0, 1.0]),
            Covariance(RESPONSES_COVARIANCE_LABEL, CovarianceType.UNSTRUCTURED_COVARIANCE,
                       matrix=[[2.0]]),
        ],
        hypotheses=[Hypothesis(
            HypothesisType.INTERACTION,
            between_mappings=[HypothesisBetweenMapping("group")],
            within_mappings=[HypothesisRepeatedMeasuresMapping("time", TrendType.LINEAR)],
        )],
        matrices={"beta": np.arange(9.0).reshape(3, 3)},
        **sweep(),
    )


@pytest.fixture
def clustered_design():
    """Guided: 2 groups, clusters of 3, two correlated responses."""
    return StudyDesign(
        between_factors=[BetweenParticipantFactor("arm", ["control", "treated"])],
        clusters=[ClusterNode("classroom", 3, intra_cluster_correlation=0.1)],
        responses=[ResponseNode("reading"), ResponseNode("math")],
        covariances=[
            Covariance(RESPONSES_COVARIANCE_LABEL, CovarianceType.UNSTRUCTURED_CORRELATION,
                       standard_deviations=[1.0, 2.0],
                       matrix=[[1.0, 0.3], [0.3, 1.0]]),
        ],
        hypotheses=[Hypothesis(HypothesisType.MAIN_EFFECT,
                               between_mappings=[HypothesisBetweenMapping("arm")])],
        matrices={"beta": [[1.0, 2.0], [3.0, 4.0]]},
        **sweep(),
    )


@pytest.fixture
def covariate_design():
    """Guided: 2 groups, one response, Gaussian covariate."""
    return StudyDesign(
        gaussian_covariate=True,
        between_factors=[BetweenParticipantFactor("treatment", ["placebo", "drug"])],
        responses=[ResponseNode("score")],
        covariances=[
            Covariance(RESPONSES_COVARIANCE_LABEL, CovarianceType.UNSTRUCTURED_COVARIANCE,
                       matrix=[[4.0]]),
        ],
        hypotheses=[Hypothesis(HypothesisType.MAIN_EFFECT,
                               between_mappings=[HypothesisBetweenMapping("treatment")])],
        matrices={
            "beta": [[0.0], [1.0]],
            "betaRandom": [[0.5]],
            "sigmaGaussianRandom": [[2.0]],
            "sigmaOutcomeGaussianRandom": [[0.5]],
        },
        power_methods=[PowerMethod.UNCONDITIONAL, PowerMethod.QUANTILE],
        quantiles=[0.5, 0.75],
        **sweep(),
    )


@pytest.fixture
def matrix_design():
    """Matrix mode: literal 2-group matrices."""
    return StudyDesign(
        view_type=ViewType.MATRIX_MODE,
        matrices={
            "design": np.eye(2),
            "beta": [[1.0, 0.0], [0.0, 1.0]],
            "betweenSubjectContrast": [[1.0, -1.0]],
            "withinSubjectContrast": np.eye(2),
            "sigmaError": [[1.0, 0.2], [0.2, 1.0]],
        },
        **sweep(),
    )


# =====================================================================
# Fake engines
# =====================================================================


def engine_results(bundle, n=2, **overrides):
    """n deterministic EngineResults for a bundle."""
    fields = dict(
        test=bundle.tests[0] if bundle.tests else StatisticalTest.HLT,
        alpha=bundle.alphas[0] if bundle.alphas else 0.05,
        nominal_power=0.8,
        actual_power=0.9,
        total_sample_size=20,
        beta_scale=1.0,
        sigma_scale=1.0,
        power_method=bundle.power_methods[0],
    )
    fields.update(overrides)
    return [EngineResult(**{**fields, "actual_power": fields["actual_power"] - i / 10})
            for i in range(n)]


@pytest.fixture
def instant_engine():
    """Returns two results immediately."""
    return FunctionEngine(engine_results, name="instant")


class BlockingEngine:
    """Blocks until released; records whether it was told to cancel."""

    def __init__(self, cancellable=True):
        self.release = threading.Event()
        self.started = threading.Event()
        self.cancel_seen = threading.Event()
        self.cancellable = cancellable

    @property
    def name(self):
        return "blocking"

    def supports(self, capability):
        return self.cancellable and capability == CAPABILITY_CANCELLATION

    def solve(self, bundle, cancel_event=None, **kwargs):
        self.started.set()
        while not self.release.wait(0.01):
            if cancel_event is not None and cancel_event.is_set():
                self.cancel_seen.set()
                return []
        return engine_results(bundle)


@pytest.fixture
def make_blocking_engine():
    """Factory for BlockingEngines; all are released at teardown."""
    engines = []

    def make(cancellable=True):
        engine = BlockingEngine(cancellable)
        engines.append(engine)
        return engine

    yield make
    for engine in engines:
        engine.release.set()


@pytest.fixture
def blocking_engine(make_blocking_engine):
    return make_blocking_engine()


@pytest.fixture
def make_raising_engine():
    """Factory for engines whose every call raises the given error."""
    def make(error):
        def solve(bundle, **kwargs):
            raise error
        return FunctionEngine(solve, name="raising")
    return make


@pytest.fixture
def make_results():
    return engine_results
