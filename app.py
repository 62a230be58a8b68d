# ============================================================================
# app.py - Streamlit Dashboard
# ============================================================================
"""
Exchange rate / inflation / output gap analysis dashboard.

Run with: streamlit run app.py
"""

from dataclasses import replace

import pandas as pd
import streamlit as st

from causality_irf import plot_irf_with_ci
from cointegration import BoundsVerdict
from config import load_config
from data_loader import add_output_gap, load_panel, prepare_panel
from errors import AnalysisError
from pipeline import run_analysis
from plots import plot_original_series, plot_residuals, plot_stationarity_transforms
from statistical_tests import verdict_table
from var_model import stability_table

# ============================================================================
# PAGE CONFIGURATION
# ============================================================================

st.set_page_config(
    page_title="Exchange Rate, Inflation & Output Gap - VAR/ARDL Analysis",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .main-header {
        font-size: 2.5rem;
        font-weight: bold;
        color: #1f77b4;
        text-align: center;
        margin-bottom: 2rem;
    }
    .section-header {
        font-size: 1.8rem;
        font-weight: bold;
        color: #ff7f0e;
        margin-top: 2rem;
        margin-bottom: 1rem;
        border-bottom: 2px solid #ff7f0e;
        padding-bottom: 0.5rem;
    }
</style>
""", unsafe_allow_html=True)

if 'report' not in st.session_state:
    st.session_state.report = None


def highlight_verdict(row):
    colors = {'I(0)': '#d4edda', 'I(1)': '#fff3cd', 'Ambiguous': '#f8d7da'}
    return [f"background-color: {colors.get(row['Verdict'], '')}"] * len(row)


def highlight_result(value):
    if value == 'Causal':
        return 'background-color: #d4edda'
    if value == 'Weak':
        return 'background-color: #fff3cd'
    return ''

# ============================================================================
# SECTIONS
# ============================================================================

def show_integration(report):
    st.markdown('<div class="section-header">1. Integration Order</div>', unsafe_allow_html=True)
    st.markdown("""
    **ADF / PP H₀:** unit root  |  **KPSS H₀:** stationarity
    **Decision:** PP and KPSS decide the order; ADF is reported for reference.
    """)
    table = verdict_table(report.verdicts)
    st.dataframe(
        table.style.apply(highlight_verdict, axis=1).format({'Statistic': '{:.4f}', 'p-value': '{:.4f}'}),
        use_container_width=True
    )
    for name, verdict in report.verdicts.items():
        st.write(f"- **{name}**: {verdict.order.value} ({verdict.reason})")

    st.plotly_chart(plot_original_series(report.panel), use_container_width=True)
    differenced = [name for name, trans in report.transforms.items() if trans == 'diff']
    if differenced:
        st.plotly_chart(plot_stationarity_transforms(report.panel, differenced), use_container_width=True)


def show_cointegration(report):
    coint = report.cointegration
    if coint is None:
        st.info("All variables are I(0): no long-run test needed, the VAR is estimated in levels.")
        return

    st.markdown('<div class="section-header">2. ARDL Bounds Test</div>', unsafe_allow_html=True)
    order = coint.model.order
    st.write(f"**Best model:** ARDL({order['lags']}, "
             f"{', '.join(str(q) for q in order['order'].values())}), case {coint.case}")

    with st.expander("Top ARDL orders by AIC"):
        st.dataframe(coint.top_orders, use_container_width=True)

    rows = [{
        'Test': t.test,
        'Statistic': t.statistic,
        'I(0) bound': t.lower_bound,
        'I(1) bound': t.upper_bound,
        'p-value': t.pvalue,
        'Verdict': t.verdict.value,
    } for t in (coint.f_test, coint.t_test)]
    st.dataframe(pd.DataFrame(rows), use_container_width=True)

    if coint.verdict is BoundsVerdict.COINTEGRATED:
        st.success("✅ **Cointegrated:** both bounds tests reject no-cointegration.")
        st.write({k: round(v, 4) for k, v in coint.long_run.items()})
    elif coint.verdict is BoundsVerdict.NO_COINTEGRATION:
        st.warning("**No cointegration:** continuing with a short-run VAR in differences.")
    else:
        st.warning("⚠️ **Inconclusive:** a statistic falls between the bounds.")


def show_var(report):
    if report.short_run is None:
        return
    st.markdown('<div class="section-header">3. Short-run VAR</div>', unsafe_allow_html=True)

    sel = report.lag_selection
    st.dataframe(sel.table.style.highlight_min(axis=0, color='#d4edda'), use_container_width=True)
    st.write(f"Criteria choose {sel.selected}; using **{sel.criterion.upper()}** → VAR({sel.lag_order})")

    with st.expander(f"VAR({sel.lag_order}) Model Summary"):
        st.text(str(report.short_run.results.summary()))

    is_stable, stability_df = stability_table(report.short_run)
    st.dataframe(stability_df, use_container_width=True)
    if is_stable:
        st.success("✓ STABLE: all eigenvalues inside the unit circle")
    else:
        st.error("✗ UNSTABLE")


def show_diagnostics(report):
    diag = report.diagnostics
    if diag is None:
        return
    st.markdown('<div class="section-header">4. Residual Diagnostics</div>', unsafe_allow_html=True)
    rows = [
        {'Test': f"Portmanteau ({diag.lags} lags)", 'Statistic': diag.serial_statistic, 'p-value': diag.serial_pvalue},
        {'Test': f"ARCH-LM ({diag.lags} lags)", 'Statistic': diag.arch_statistic, 'p-value': diag.arch_pvalue},
        {'Test': "Jarque-Bera", 'Statistic': diag.normality_statistic, 'p-value': diag.normality_pvalue},
    ]
    st.dataframe(pd.DataFrame(rows).style.format({'Statistic': '{:.4f}', 'p-value': '{:.4f}'}),
                 use_container_width=True)

    for violation in diag.violations():
        st.warning(f"⚠️ Residuals show {violation}")
    st.info(f"**Covariance policy for causality tests:** {diag.covariance_policy.name}")
    st.plotly_chart(plot_residuals(report.short_run), use_container_width=True)


def show_causality(report, irf_steps):
    if not report.causality:
        return
    st.markdown('<div class="section-header">5. Granger Causality</div>', unsafe_allow_html=True)
    st.markdown("**H₀:** X does NOT Granger-cause Y")
    table = pd.DataFrame([v.as_row() for v in report.causality])
    st.dataframe(
        table.style.format({'Wald F': '{:.4f}', 'p-value': '{:.4f}'}).map(highlight_result, subset=['Result']),
        use_container_width=True
    )
    st.plotly_chart(plot_irf_with_ci(report.short_run, steps=irf_steps), use_container_width=True)

# ============================================================================
# MAIN
# ============================================================================

def main():
    st.markdown('<div class="main-header">Exchange Rate, Inflation & Output Gap</div>', unsafe_allow_html=True)

    with st.sidebar:
        st.header("📊 Data Configuration")
        uploaded = st.file_uploader("Monthly data (CSV)", type=['csv'])
        config_path = st.text_input("Configuration file (optional)", value="")

        st.subheader("Analysis Parameters")
        alpha = st.selectbox("Significance level", [0.10, 0.05, 0.01], index=1)
        var_max_lags = st.slider("Maximum VAR lags", 1, 12, 10)
        ardl_max_order = st.slider("Maximum ARDL order", 1, 8, 5)
        criterion = st.selectbox("Lag criterion", ['aic', 'bic', 'hqic', 'fpe'], index=0)

        run = st.button("🚀 Run Analysis", type="primary", use_container_width=True)

    if uploaded is None:
        st.info("👈 **Upload a CSV with Date, exchange rate, inflation and activity columns.**")
        return

    try:
        config = load_config(config_path or None)
    except AnalysisError as e:
        st.error(f"Configuration error: {e}")
        return
    config = replace(config, alpha=alpha, var_max_lags=var_max_lags,
                     ardl_max_order=ardl_max_order, lag_criterion=criterion)

    if run:
        try:
            with st.spinner("Running analysis..."):
                data = add_output_gap(load_panel(uploaded, config), config)
                panel = prepare_panel(data, config)
                st.session_state.report = run_analysis(panel, config)
        except AnalysisError as e:
            st.session_state.report = None
            st.error(f"❌ Analysis stopped at **{e.stage}**: {e.detail}")
            return

    report = st.session_state.report
    if report is None:
        return

    st.success(f"✅ {len(report.panel)} observations from {report.panel.index[0].date()} "
               f"to {report.panel.index[-1].date()}")
    show_integration(report)
    show_cointegration(report)
    show_var(report)
    show_diagnostics(report)
    show_causality(report, config.irf_steps)


if __name__ == "__main__":
    main()
