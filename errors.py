# ============================================================================
# errors.py - Error Taxonomy
# ============================================================================
"""
This module handles:
- Typed failures raised by each analysis stage
- Stage and variable context attached to every failure
"""

STAGES = (
    'config',
    'data',
    'classification',
    'path_selection',
    'cointegration',
    'model_build',
    'diagnostics',
    'causality',
)


class AnalysisError(Exception):
    """Base failure: knows which stage and which variable/specification raised it"""

    def __init__(self, stage, detail, variable=None):
        if stage not in STAGES:
            raise ValueError(f"Unknown analysis stage: {stage}")
        self.stage = stage
        self.detail = detail
        self.variable = variable
        super().__init__(str(self))

    def __str__(self):
        where = f"[{self.stage}]"
        if self.variable is not None:
            where += f" {self.variable}:"
        return f"{where} {self.detail}"


class DataError(AnalysisError):
    """Missing/unsortable dates, too few observations, gaps after alignment"""


class ClassificationAmbiguous(AnalysisError):
    """Stationarity tests disagree and no order of integration can be assigned"""


class UnsupportedIntegrationOrder(AnalysisError):
    """Series needs a second difference, or every variable is I(1)"""


class InfeasibleSpecification(AnalysisError):
    """Lag structure exceeds the degrees of freedom available"""


class TestLibraryFailure(AnalysisError):
    """The underlying statistical routine failed numerically"""

    # keep pytest from collecting this class
    __test__ = False
