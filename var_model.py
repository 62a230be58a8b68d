# ============================================================================
# var_model.py - VAR Model Construction Module
# ============================================================================
"""
This module handles:
- Building the stationary working dataset from integration verdicts
- Lag order selection under several information criteria
- VAR estimation with per-equation regression views
- VAR stability analysis (companion matrix eigenvalues)
"""

import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from statsmodels.tsa.api import VAR

from data_loader import apply_transformation
from errors import ClassificationAmbiguous, DataError, InfeasibleSpecification, TestLibraryFailure
from statistical_tests import IntegrationOrder

logger = logging.getLogger(__name__)

CRITERIA = ('aic', 'bic', 'hqic', 'fpe')
CRITERION_ALIASES = {'sc': 'bic', 'hq': 'hqic'}


@dataclass(frozen=True)
class WorkingDataset:
    data: pd.DataFrame
    transforms: dict
    names: dict

    def column(self, variable):
        """Working column for an original variable name (or a working name)"""
        if variable in self.names:
            return self.names[variable]
        if variable in self.data.columns:
            return variable
        raise DataError('model_build', "Not in the working dataset", variable=variable)


@dataclass(frozen=True)
class EquationView:
    name: str
    response: pd.Series
    design: pd.DataFrame


@dataclass(frozen=True)
class CandidateModel:
    kind: str
    results: object
    order: object
    data: pd.DataFrame
    equations: dict = field(default_factory=dict)

    @property
    def names(self):
        return list(self.data.columns)


@dataclass(frozen=True)
class LagSelection:
    table: pd.DataFrame
    selected: dict
    criterion: str
    lag_order: int

# ============================================================================
# WORKING DATASET
# ============================================================================

def build_working_dataset(verdicts, raw):
    """Difference I(1) variables, keep I(0) levels, align on the differenced window"""
    transformations = {}
    for col in raw.columns:
        if col not in verdicts:
            raise DataError('model_build', "No integration verdict", variable=col)
        order = verdicts[col].order
        if order is IntegrationOrder.AMBIGUOUS:
            raise ClassificationAmbiguous('model_build', verdicts[col].reason, variable=col)
        transformations[col] = 'diff' if order is IntegrationOrder.I1 else 'level'

    data, _ = apply_transformation(raw, transformations)
    expected = raw.index[1:] if 'diff' in transformations.values() else raw.index
    if not data.index.equals(expected):
        raise DataError('model_build', "Gaps in the working dataset after alignment")

    names = {col: (f"d_{col}" if trans == 'diff' else col) for col, trans in transformations.items()}
    logger.info("Working dataset: %d observations, %s", len(data),
                ', '.join(names[col] for col in raw.columns))
    return WorkingDataset(data=data, transforms=transformations, names=names)

# ============================================================================
# LAG ORDER SELECTION
# ============================================================================

def _criterion(name):
    name = CRITERION_ALIASES.get(name.lower(), name.lower())
    if name not in CRITERIA:
        raise ValueError(f"Unknown information criterion {name!r}; use one of {CRITERIA}")
    return name


def select_lag_order(working, max_lag_order=10, criterion='aic'):
    """
    Evaluate lags 1..max under AIC, BIC (SC), HQ and FPE.
    The policy criterion picks the order; the full table is kept since
    the criteria often disagree.
    """
    criterion = _criterion(criterion)
    data = working.data if isinstance(working, WorkingDataset) else working
    nobs, k = data.shape

    if max_lag_order < 1:
        raise DataError('model_build', f"max lag order must be at least 1, got {max_lag_order}")
    if nobs - max_lag_order <= 1 + k * max_lag_order:
        raise DataError('model_build',
                        f"{nobs} observations cannot support a lag search up to {max_lag_order} "
                        f"for {k} variables")

    try:
        orders = VAR(data).select_order(maxlags=max_lag_order, trend='c')
    except (np.linalg.LinAlgError, ValueError) as e:
        raise TestLibraryFailure('model_build', f"Lag order selection failed: {e}") from e

    table = pd.DataFrame({ic: orders.ics[ic] for ic in CRITERIA})
    table.index.name = 'Lag'
    table = table.loc[1:]
    selected = {ic: int(table[ic].idxmin()) for ic in CRITERIA}

    if len(set(selected.values())) > 1:
        logger.info("Criteria disagree on lag order %s; using %s", selected, criterion.upper())
    return LagSelection(table=table, selected=selected, criterion=criterion,
                        lag_order=selected[criterion])

# ============================================================================
# VAR ESTIMATION
# ============================================================================

def fit_short_run_model(working, lag_order):
    """VAR(p) with a constant in every equation, plus each equation's regression view"""
    data = working.data if isinstance(working, WorkingDataset) else working
    nobs, k = data.shape
    n_params = 1 + k * lag_order
    if nobs - lag_order <= n_params:
        raise InfeasibleSpecification(
            'model_build',
            f"VAR({lag_order}) needs {n_params} parameters per equation but only "
            f"{nobs - lag_order} observations remain",
        )

    try:
        results = VAR(data).fit(lag_order, trend='c')
    except (np.linalg.LinAlgError, ValueError) as e:
        raise TestLibraryFailure('model_build', f"VAR({lag_order}) estimation failed: {e}") from e

    # Literal design matrix used in estimation, shared by every equation
    index = data.index[lag_order:]
    design = pd.DataFrame(np.asarray(results.endog_lagged), index=index,
                          columns=list(results.params.index))
    equations = {}
    for i, name in enumerate(results.names):
        response = pd.Series(np.asarray(results.endog)[lag_order:, i], index=index, name=name)
        equations[name] = EquationView(name=name, response=response, design=design)

    logger.info("Fitted VAR(%d) on %d observations", lag_order, results.nobs)
    return CandidateModel(kind='var', results=results, order=lag_order, data=data,
                          equations=equations)


def build_short_run_model(verdicts, raw, max_lag_order=10, criterion='aic'):
    """Working dataset -> lag selection -> VAR fit"""
    working = build_working_dataset(verdicts, raw)
    selection = select_lag_order(working, max_lag_order=max_lag_order, criterion=criterion)
    model = fit_short_run_model(working, selection.lag_order)
    return model, selection, working

# ============================================================================
# STABILITY ANALYSIS
# ============================================================================

def stability_table(model):
    """Companion-matrix eigenvalues, VAR roots and inverse roots"""
    results = model.results if isinstance(model, CandidateModel) else model
    coefs = results.coefs  # (p, k, k)
    p, k, _ = coefs.shape

    # Build companion matrix (k*p x k*p)
    companion = np.zeros((k * p, k * p))
    companion[:k, :] = np.hstack(list(coefs))
    if p > 1:
        companion[k:, :-k] = np.eye(k * (p - 1))

    eigenvalues = np.linalg.eigvals(companion)
    moduli = np.abs(eigenvalues)
    order = np.argsort(-moduli)
    eigenvalues, moduli = eigenvalues[order], moduli[order]
    inverse_roots = 1 / eigenvalues

    stability_df = pd.DataFrame({
        'Eigenvalue (Real)': np.real(eigenvalues),
        'Eigenvalue (Imag)': np.imag(eigenvalues),
        'Eigenvalue |λ|': moduli,
        'Root (Real)': np.real(inverse_roots),
        'Root (Imag)': np.imag(inverse_roots),
        'Root |1/λ|': np.abs(inverse_roots),
        'Stable?': np.where(moduli < 1, 'YES', 'NO'),
    }, index=pd.RangeIndex(1, len(eigenvalues) + 1, name='Index'))

    is_stable = bool(np.all(moduli < 1))
    return is_stable, stability_df
