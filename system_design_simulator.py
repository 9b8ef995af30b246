"""
System Design Simulator
Play with traffic, scale, cache & DB constraints and watch the bottleneck move.

Request path: client → load balancer → app tier → cache → database

Key Concepts:
- Saturation: load / capacity per tier (> 100% = overload)
- Bottleneck: the most saturated tier limits the whole system
- Tail latency: p95 pulls away from p50 as saturation approaches 100%
- Cost: driven by provisioned capacity, not by traffic

Run with: streamlit run system_design_simulator.py
"""

import streamlit as st
import numpy as np
import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots
from typing import List

from system_design_model import (
    HEALTHY_LIMIT,
    OVERLOAD_LIMIT,
    SimulationResult,
    SystemConfig,
    SystemStatus,
    evaluate,
    sweep,
)
from system_design_recommendations import get_recommendations
from system_design_catalog import COMPONENT_INFO, PRESETS, fmt_money, fmt_pct, live_metrics

STATUS_COLORS = {
    SystemStatus.HEALTHY: '#96CEB4',
    SystemStatus.DEGRADED: '#FFB347',
    SystemStatus.OVERLOADED: '#FF6B6B',
}

STATUS_ICONS = {
    SystemStatus.HEALTHY: "🟢",
    SystemStatus.DEGRADED: "🟡",
    SystemStatus.OVERLOADED: "🔴",
}

SEVERITY_ICONS = {'low': "🟢", 'med': "🟡", 'high': "🔴"}

# Node layout for the architecture diagram (x, y)
NODE_POSITIONS = {
    'client': (0, 1),
    'lb': (1, 1),
    'app': (2, 1),
    'cache': (3, 1.7),
    'db': (4, 1),
}

# ============================================================================
# VISUALIZATION
# ============================================================================

def create_architecture_plot(result: SimulationResult) -> go.Figure:
    """Draw the request path with each node coloured by its own status"""
    fig = go.Figure()
    diagram = result.diagram

    for edge in diagram.edges:
        x0, y0 = NODE_POSITIONS[edge.source]
        x1, y1 = NODE_POSITIONS[edge.target]
        fig.add_trace(go.Scatter(
            x=[x0, x1], y=[y0, y1], mode='lines',
            line=dict(color='#B0B0B0', width=2, dash='dot' if edge.label == "—" else 'solid'),
            hoverinfo='skip', showlegend=False
        ))
        fig.add_annotation(x=(x0 + x1) / 2, y=(y0 + y1) / 2, text=edge.label,
                           showarrow=False, font=dict(size=10, color='#808080'), yshift=10)

    xs, ys, colors, labels, hovers = [], [], [], [], []
    for node in diagram.nodes:
        x, y = NODE_POSITIONS[node.id]
        xs.append(x)
        ys.append(y)
        colors.append(STATUS_COLORS[node.status])
        metrics = "<br>".join(f"{k}: {v}" for k, v in node.metrics)
        labels.append(f"<b>{node.title}</b><br>{node.subtitle}<br>{metrics}")
        hovers.append(f"{node.title} ({node.status.value})")

    fig.add_trace(go.Scatter(
        x=xs, y=ys, mode='markers+text',
        marker=dict(size=46, color=colors, line=dict(color='#333333', width=1)),
        text=labels, textposition='bottom center',
        hovertext=hovers, hoverinfo='text', showlegend=False
    ))

    fig.update_layout(
        height=380,
        margin=dict(l=20, r=20, t=30, b=20),
        xaxis=dict(visible=False, range=[-0.6, 4.6]),
        yaxis=dict(visible=False, range=[0.2, 2.1]),
        plot_bgcolor='rgba(0,0,0,0)'
    )

    return fig


def create_saturation_plot(result: SimulationResult) -> go.Figure:
    """Bar chart of per-tier saturation against the status thresholds"""
    sat = result.saturation
    tiers = ['App', 'Cache', 'DB']
    values = [sat.app * 100, sat.cache * 100, sat.db * 100]
    colors = [STATUS_COLORS[SystemStatus.HEALTHY] if v < HEALTHY_LIMIT * 100
              else STATUS_COLORS[SystemStatus.DEGRADED] if v < OVERLOAD_LIMIT * 100
              else STATUS_COLORS[SystemStatus.OVERLOADED] for v in values]

    fig = go.Figure(go.Bar(x=tiers, y=values, marker_color=colors,
                           text=[f"{v:.0f}%" for v in values], textposition='outside'))
    fig.add_hline(y=HEALTHY_LIMIT * 100, line_dash="dash", line_color="orange",
                  annotation_text="Degraded")
    fig.add_hline(y=OVERLOAD_LIMIT * 100, line_dash="dash", line_color="red",
                  annotation_text="Overloaded")

    fig.update_layout(height=350, title_text="Tier Saturation", showlegend=False)
    fig.update_yaxes(title_text="Saturation (%)")

    return fig


def create_cost_plot(result: SimulationResult) -> go.Figure:
    labels = [label for label, _ in result.cost.breakdown]
    values = [value for _, value in result.cost.breakdown]

    fig = go.Figure(go.Pie(labels=labels, values=values, hole=0.45,
                           marker=dict(colors=['#45B7D1', '#DDA0DD', '#4ECDC4'])))
    fig.update_layout(height=350, title_text=f"Monthly Cost ({fmt_money(result.cost.monthly_total)})")

    return fig


def create_sweep_plot(df: pd.DataFrame, x_label: str) -> go.Figure:
    """Saturation, latency, errors and cost as one knob changes"""
    fig = make_subplots(
        rows=2, cols=2,
        subplot_titles=(
            'Saturation',
            'Latency',
            'Error Rate',
            'Monthly Cost'
        )
    )

    for column, name, color in (('app_sat', 'App', '#FF6B6B'),
                                ('cache_sat', 'Cache', '#DDA0DD'),
                                ('db_sat', 'DB', '#45B7D1')):
        fig.add_trace(
            go.Scatter(x=df['value'], y=df[column] * 100, mode='lines',
                       name=name, line=dict(color=color, width=3)),
            row=1, col=1
        )
    fig.add_hline(y=100, line_dash="dash", line_color="red", row=1, col=1)

    fig.add_trace(
        go.Scatter(x=df['value'], y=df['p50_ms'], mode='lines',
                   name='p50', line=dict(color='#96CEB4', width=3)),
        row=1, col=2
    )
    fig.add_trace(
        go.Scatter(x=df['value'], y=df['p95_ms'], mode='lines',
                   name='p95', line=dict(color='#FF6B6B', width=3)),
        row=1, col=2
    )

    fig.add_trace(
        go.Scatter(x=df['value'], y=df['error_rate'] * 100, mode='lines',
                   name='Errors', line=dict(color='#FFB347', width=3)),
        row=2, col=1
    )

    fig.add_trace(
        go.Scatter(x=df['value'], y=df['monthly_total'], mode='lines',
                   name='Cost', line=dict(color='#4ECDC4', width=3)),
        row=2, col=2
    )

    fig.update_layout(height=600, title_text=f"Sweep over {x_label}")

    fig.update_xaxes(title_text=x_label)
    fig.update_yaxes(title_text="Saturation (%)", row=1, col=1)
    fig.update_yaxes(title_text="ms", row=1, col=2)
    fig.update_yaxes(title_text="Errors (%)", row=2, col=1)
    fig.update_yaxes(title_text="$ / month", row=2, col=2)

    return fig


def render_info(component_id: str, result: SimulationResult, config: SystemConfig):
    """Component reference card plus its live values"""
    info = COMPONENT_INFO[component_id]
    st.markdown(info.overview)

    live = live_metrics(component_id, result, config)
    st.dataframe(pd.DataFrame(live, columns=["Metric", "Value"]), use_container_width=True, hide_index=True)

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("**Affected by**\n" + _bullets(info.affected_by))
        st.markdown("**Symptoms**\n" + _bullets(info.symptoms))
    with col2:
        st.markdown("**Affects**\n" + _bullets(info.affects))
        st.markdown("**Fixes**\n" + _bullets(info.fixes))
    if info.notes:
        st.caption(" ".join(info.notes))


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


# ============================================================================
# STREAMLIT UI
# ============================================================================

st.set_page_config(layout="wide", page_title="System Design Simulator")

st.title("🏗️ System Design Simulator")

st.markdown("""
Explore how **traffic**, **scale**, **caching** and **database** choices move the bottleneck
in a classic request path: **client → load balancer → app → cache → database**.

**Key Concepts**:
- **Saturation**: load / capacity per tier (anything near 100% is risky)
- **Bottleneck**: the most saturated tier limits the whole system
- **Tail latency**: p95 climbs before p50 as a tier approaches saturation
- **Cost**: what you provision, not what you use
""")

# Sidebar for configuration
st.sidebar.header("⚙️ System Configuration")

preset_key = st.sidebar.selectbox(
    "Quick Preset",
    list(PRESETS),
    format_func=lambda key: PRESETS[key].name,
    help="Curated starting points; tune one knob at a time from here"
)
preset = PRESETS[preset_key].config
st.sidebar.caption(PRESETS[preset_key].description)
# Section info panels are filled once the configuration has been evaluated
section_panels = {"preset_section": st.sidebar.expander("ℹ️ About presets")}

st.sidebar.subheader("📥 Traffic")
rps = st.sidebar.slider(
    "Requests per second",
    min_value=0, max_value=3000, value=int(preset.rps), step=10,
    key=f"rps_{preset_key}"
)
read_ratio = st.sidebar.slider(
    "Read ratio",
    min_value=0.0, max_value=1.0, value=float(preset.read_ratio), step=0.01,
    key=f"read_ratio_{preset_key}"
)
payload_kb = st.sidebar.slider(
    "Avg payload (KB)",
    min_value=1, max_value=64, value=int(preset.payload_kb),
    help="Large payloads reduce cache effectiveness",
    key=f"payload_{preset_key}"
)
section_panels["traffic_section"] = st.sidebar.expander("ℹ️ About traffic")

st.sidebar.subheader("🖥️ App Tier")
app_instances = st.sidebar.slider(
    "Instances",
    min_value=1, max_value=30, value=int(preset.app_instances),
    key=f"instances_{preset_key}"
)
app_rps_per_instance = st.sidebar.slider(
    "RPS per instance",
    min_value=20, max_value=500, value=int(preset.app_rps_per_instance), step=10,
    key=f"per_instance_{preset_key}"
)
autoscale = st.sidebar.checkbox("Autoscaling", value=preset.autoscale, key=f"autoscale_{preset_key}")
section_panels["app_section"] = st.sidebar.expander("ℹ️ About the app tier")

st.sidebar.subheader("⚡ Cache")
cache_enabled = st.sidebar.checkbox("Cache enabled", value=preset.cache_enabled, key=f"cache_{preset_key}")
base_cache_hit_rate = st.sidebar.slider(
    "Base hit rate",
    min_value=0.0, max_value=0.95, value=float(preset.base_cache_hit_rate), step=0.01,
    disabled=not cache_enabled, key=f"hit_rate_{preset_key}"
)
cache_rps_capacity = st.sidebar.slider(
    "Cache capacity (rps)",
    min_value=100, max_value=5000, value=int(preset.cache_rps_capacity), step=50,
    disabled=not cache_enabled, key=f"cache_cap_{preset_key}"
)
section_panels["cache_section"] = st.sidebar.expander("ℹ️ About the cache")

st.sidebar.subheader("🗄️ Database")
db_enabled = st.sidebar.checkbox("Database enabled", value=preset.db_enabled, key=f"db_{preset_key}")
db_qps_capacity = st.sidebar.slider(
    "DB capacity (qps)",
    min_value=50, max_value=2000, value=int(preset.db_qps_capacity), step=10,
    disabled=not db_enabled, key=f"db_cap_{preset_key}"
)
db_write_penalty = st.sidebar.slider(
    "Write penalty",
    min_value=1.0, max_value=3.0, value=float(preset.db_write_penalty), step=0.05,
    disabled=not db_enabled, key=f"write_penalty_{preset_key}"
)
replication_enabled = st.sidebar.checkbox(
    "Replication (read boost)", value=preset.replication_enabled,
    disabled=not db_enabled, key=f"replication_{preset_key}"
)
partitioning_enabled = st.sidebar.checkbox(
    "Partitioning (write boost)", value=preset.partitioning_enabled,
    disabled=not db_enabled, key=f"partitioning_{preset_key}"
)
section_panels["db_section"] = st.sidebar.expander("ℹ️ About the database")

st.sidebar.subheader("🌐 Baseline Latency")
base_latency_ms = st.sidebar.slider(
    "Base latency (ms)",
    min_value=0, max_value=300, value=int(preset.base_latency_ms), step=1,
    help="Network + serialization + base compute",
    key=f"base_latency_{preset_key}"
)
section_panels["latency_section"] = st.sidebar.expander("ℹ️ About baseline latency")

config = SystemConfig(
    rps=rps,
    read_ratio=read_ratio,
    payload_kb=payload_kb,
    app_instances=app_instances,
    app_rps_per_instance=app_rps_per_instance,
    autoscale=autoscale,
    cache_enabled=cache_enabled,
    base_cache_hit_rate=base_cache_hit_rate,
    cache_rps_capacity=cache_rps_capacity,
    db_enabled=db_enabled,
    db_qps_capacity=db_qps_capacity,
    db_write_penalty=db_write_penalty,
    replication_enabled=replication_enabled,
    partitioning_enabled=partitioning_enabled,
    base_latency_ms=base_latency_ms,
)

result = evaluate(config)

for section_id, panel in section_panels.items():
    with panel:
        render_info(section_id, result, config)

# ============================================================================
# HEADLINE METRICS
# ============================================================================

col1, col2, col3, col4, col5 = st.columns(5)

with col1:
    st.metric(f"{STATUS_ICONS[result.status]} Status", result.status.value.upper())
with col2:
    st.metric("📥 RPS", f"{round(result.traffic.rps)}",
              help=f"{round(result.traffic.reads)} reads / {round(result.traffic.writes)} writes")
with col3:
    st.metric("⏱️ p95 Latency", f"{round(result.latency.p95)} ms",
              help=f"p50 = {round(result.latency.p50)} ms")
with col4:
    st.metric("❌ Error Rate", f"{result.errors.rate * 100:.2f}%", help=result.errors.reason)
with col5:
    st.metric("💰 Monthly Cost", fmt_money(result.cost.monthly_total))

if result.status is SystemStatus.OVERLOADED:
    st.error(f"""
    ⚠️ **System Overloaded!**

    The **{result.saturation.bottleneck.value.upper()}** tier is at {fmt_pct(result.saturation.worst)} saturation.
    Primary issue: **{result.errors.reason}** ({result.errors.rate * 100:.2f}% of requests failing).
    """)
elif result.status is SystemStatus.DEGRADED:
    st.warning(f"""
    ⚠️ **Running Hot**

    The **{result.saturation.bottleneck.value.upper()}** tier is at {fmt_pct(result.saturation.worst)} saturation.
    Tail latency will be sensitive to traffic spikes.
    """)

# ============================================================================
# ARCHITECTURE
# ============================================================================

st.header("🗺️ Architecture")

st.plotly_chart(create_architecture_plot(result), use_container_width=True)

hotspot_cols = st.columns(len(result.diagram.hotspots))
for col, hotspot in zip(hotspot_cols, result.diagram.hotspots):
    with col:
        st.markdown(f"{SEVERITY_ICONS[hotspot.severity.value]} **{hotspot.label}** ({hotspot.severity.value})")

# ============================================================================
# METRICS & RECOMMENDATIONS
# ============================================================================

tab1, tab2, tab3, tab4 = st.tabs(["📊 Performance", "💰 Cost", "🧭 Recommendations", "📈 RPS Sweep"])

with tab1:
    col1, col2 = st.columns(2)

    with col1:
        st.plotly_chart(create_saturation_plot(result), use_container_width=True)

    with col2:
        st.subheader("Latency & Reliability")
        perf = pd.DataFrame({
            "Metric": ["p50 latency", "p95 latency", "Error rate", "Primary issue",
                       "Bottleneck", "Cache hit rate"],
            "Value": [
                f"{round(result.latency.p50)} ms",
                f"{round(result.latency.p95)} ms",
                f"{result.errors.rate * 100:.2f}%",
                result.errors.reason,
                result.saturation.bottleneck.value.upper(),
                fmt_pct(result.capacity.hit_rate) if config.cache_enabled else "—",
            ]
        })
        st.dataframe(perf, use_container_width=True, hide_index=True)

        if result.latency.notes:
            st.markdown("**Notes:**\n" + _bullets(result.latency.notes))

with tab2:
    col1, col2 = st.columns(2)

    with col1:
        st.plotly_chart(create_cost_plot(result), use_container_width=True)

    with col2:
        st.subheader("Breakdown")
        cost_df = pd.DataFrame(result.cost.breakdown, columns=["Tier", "Monthly ($)"])
        st.dataframe(cost_df.round(2), use_container_width=True, hide_index=True)
        st.info("""
        📌 Cost reflects **provisioned** capacity only. Doubling traffic without changing
        capacity costs the same; it just moves you closer to saturation.
        """)

with tab3:
    for rec in get_recommendations(result, config):
        with st.container(border=True):
            st.markdown(f"**{rec.title}**")
            st.caption(rec.reason)
            st.markdown("\n".join(f"{i}. {action}" for i, action in enumerate(rec.actions, 1)))

with tab4:
    st.markdown("How do saturation, latency, errors and cost change as traffic grows?")

    max_rps = max(500.0, config.rps * 2)
    rps_values = np.linspace(0, max_rps, 120)
    sweep_df = sweep(config, "rps", rps_values)

    st.plotly_chart(create_sweep_plot(sweep_df, "RPS"), use_container_width=True)

    overloaded = sweep_df[sweep_df["status"] == SystemStatus.OVERLOADED.value]
    if not overloaded.empty:
        first = overloaded.iloc[0]
        st.info(f"""
        📌 **Breaking point**: the system overloads at about **{first['value']:.0f} RPS**,
        with the **{first['bottleneck'].upper()}** tier giving out first.
        """)
    else:
        st.success(f"✅ No overload up to {max_rps:.0f} RPS with the current configuration.")

# ============================================================================
# COMPONENT REFERENCE
# ============================================================================

st.header("ℹ️ Components")

for component_id in ('client', 'lb', 'app', 'cache', 'db'):
    with st.expander(f"{COMPONENT_INFO[component_id].title}"):
        render_info(component_id, result, config)

# Educational sections
with st.expander("📚 How the Model Works"):
    st.markdown("""
    ### Capacity

    - **App capacity** = instances × RPS/instance (× 1.08 with autoscaling)
    - **Cache** only sees reads; its hit rate drops with large payloads and a hot app tier
    - **DB** sees writes plus cache misses. Replication boosts read capacity (×1.35),
      partitioning boosts write capacity (×1.25)

    ### Latency

    Each tier multiplies the baseline by **1 + 0.7 × saturation²** (saturation input
    capped at 2.5), so latency explodes past 100%. Writes add a penalty proportional to
    their share of traffic. p95 = p50 × a tail factor that grows from 1.35 as the worst
    tier passes 70%.

    ### Errors

    | Worst saturation | Error rate |
    |------------------|------------|
    | < 85% | 0 |
    | 85-100% | up to 0.75% (tail latency spikes) |
    | ≥ 100% | 2% and rising fast, capped at 25% |

    ### Caveat

    This is an **illustrative heuristic**, not a queueing-exact model. Use it to build
    intuition about where bottlenecks move, not to size production hardware.
    """)

with st.expander("🔬 Experiment Ideas"):
    st.markdown("""
    ### Experiment 1: Find the Breaking Point
    1. Start from Baseline
    2. Raise RPS until the status turns red
    3. Note which tier fails first, then fix it and repeat

    ### Experiment 2: Cache Off
    1. Disable the cache on the Read-heavy preset
    2. Watch all reads land on the database
    3. Enable replication and compare

    ### Experiment 3: Write Pressure
    1. Load the Write-heavy preset
    2. Toggle partitioning off and on
    3. Raise the write penalty and watch p50 climb

    ### Experiment 4: Scaling the Wrong Tier
    1. Make the DB the bottleneck
    2. Add app instances
    3. Notice cost rises but the bottleneck stays put
    """)
