import streamlit as st
import plotly.express as px
import plotly.graph_objects as go
import logging

from brick_core import SETTING_NAMES
from brick_core.config import load_config, configure_logging
from brick_core.data_io import (
    composition_frame, export_state_json, load_quantity_file,
    parse_quantity_json, read_quantity_csv
)
from brick_core.engine import ConversionEngine
from brick_core.store import InMemoryStore, PersistenceUnavailable, open_store
from brick_core.utils import format_number, generate_color_palette

config = load_config()
configure_logging(config)
logger = logging.getLogger(__name__)

# Language translations
TRANSLATIONS = {
    "en": {
        "app_title": "Smart Bio Bricks",
        "welcome_message": "Turn sorted waste into bio bricks and see the landfill you save",
        "realtime_analytics": "Realtime Analytics",
        "total_waste": "Total available waste (kg)",
        "bricks_count": "Bricks producible (count)",
        "volume_diverted": "Volume diverted (m³)",
        "composition": "Composition (edit quantities)",
        "landfill_reduction": "Landfill reduction",
        "area_reduced": "Area reduced (m²)",
        "percent_reduced": "of landfill area reduced",
        "settings": "Brick & Landfill settings",
        "brickMass": "Brick mass (kg)",
        "brickVolume": "Brick volume (m³)",
        "landfillArea": "Landfill area (m²)",
        "landfillDepth": "Landfill depth (m)",
        "apply": "Apply",
        "process_steps": "Process steps",
        "load_sample": "Load sample data",
        "reset": "Reset to defaults",
        "upload": "Import quantities (JSON / CSV)",
        "sample_loaded": "Sample data loaded",
        "invalid_number": "Enter a valid number",
        "rejected_setting": "Settings must be greater than zero",
        "export": "Export state (JSON)",
        "storage": "Storage",
    }
}

PROCESS_STEPS = [
    "Dehumidifying: removes moisture",
    "Grinding: uniform fine mix",
    "Molding: compact shaping",
    "Drying: set and harden bricks",
]

def t(key):
    """Translation function"""
    language = st.session_state.get('language', 'en')
    return TRANSLATIONS.get(language, {}).get(key, key)

# Page configuration
st.set_page_config(
    page_title="Smart Bio Bricks",
    page_icon="🧱",
    layout="wide",
    initial_sidebar_state="expanded"
)

@st.cache_resource
def get_engine():
    """Create the application's engine once and hydrate it from storage"""
    store = open_store(config.get('storage.database_url'))
    engine = ConversionEngine(store=store)
    try:
        engine.load()
    except PersistenceUnavailable as e:
        logger.error(f"Could not load saved state: {e}")
    return engine

def sidebar_controls(engine):
    """Import, reset and export actions"""
    st.sidebar.title(f"🧱 {t('app_title')}")

    db_status = "💾 In-Memory" if isinstance(engine.store, InMemoryStore) else "🗄️ Database"
    st.sidebar.write(f"**{t('storage')}:** {db_status}")

    st.sidebar.divider()

    if st.sidebar.button(t("load_sample"), use_container_width=True):
        try:
            report = engine.import_quantities(load_quantity_file(config.get('data.sample_path')))
            st.sidebar.success(f"{t('sample_loaded')} ({len(report.updated_labels)} materials)")
        except (OSError, ValueError) as e:
            st.sidebar.error(f"Could not load sample data: {e}")

    if st.sidebar.button(t("reset"), use_container_width=True):
        engine.reset_to_defaults()
        st.rerun()

    uploaded = st.sidebar.file_uploader(t("upload"), type=["json", "csv"])
    if uploaded is not None and st.sidebar.button("Import file", use_container_width=True):
        try:
            if uploaded.name.lower().endswith(".csv"):
                source = read_quantity_csv(uploaded)
            else:
                source = parse_quantity_json(uploaded.getvalue())
            report = engine.import_quantities(source)
            st.sidebar.success(f"Updated: {', '.join(report.updated_labels) or 'nothing'}")
            if report.unmatched:
                st.sidebar.info(f"Unmatched keys: {', '.join(report.unmatched)}")
            if report.malformed:
                st.sidebar.warning(f"Skipped non-numeric values: {', '.join(report.malformed)}")
        except ValueError as e:
            st.sidebar.error(f"Could not read {uploaded.name}: {e}")

    st.sidebar.download_button(
        t("export"),
        data=export_state_json(engine),
        file_name="bio_bricks_state.json",
        mime="application/json",
        use_container_width=True
    )

def analytics_section(engine):
    """Headline metric cards"""
    st.subheader(t("realtime_analytics"))

    col1, col2, col3 = st.columns(3)

    with col1:
        st.metric(
            label=t("total_waste"),
            value=f"{engine.total_available_waste():.2f} kg",
            help="Sum of all material quantities"
        )

    with col2:
        st.metric(
            label=t("bricks_count"),
            value=f"{engine.bricks_producible()}",
            help="Whole bricks at the current brick mass"
        )

    with col3:
        st.metric(
            label=t("volume_diverted"),
            value=f"{engine.volume_diverted():.4f}",
            help="Bricks × brick volume"
        )

def composition_section(engine):
    """Pie chart and editable quantity list"""
    st.subheader(t("composition"))

    col1, col2 = st.columns([2, 3], gap="large")

    with col1:
        df = composition_frame(engine)
        if df.empty:
            st.info("All quantities are zero.")
        else:
            # colours follow registry order so a material keeps its colour
            palette = generate_color_palette(len(engine.labels))
            color_map = dict(zip(engine.labels, palette))
            fig = px.pie(df, names='Material', values='Quantity (kg)',
                         color='Material', color_discrete_map=color_map, hole=0.3)
            fig.update_traces(textinfo='percent', sort=False)
            fig.update_layout(height=320, margin=dict(t=10, b=10, l=10, r=10))
            st.plotly_chart(fig, use_container_width=True)

    with col2:
        with st.form("quantities_form"):
            edited = {}
            for label, quantity in engine.ordered_entries():
                edited[label] = st.text_input(label, value=str(quantity), key=f"qty_{label}")
            submit_btn = st.form_submit_button("Update quantities", type="primary")

        if submit_btn:
            invalid = []
            for label, text in edited.items():
                try:
                    value = float(text.strip())
                except ValueError:
                    invalid.append(label)
                    continue
                if value != engine.values[label]:
                    engine.update_value(label, value)
            if invalid:
                st.error(f"{t('invalid_number')}: {', '.join(invalid)}")
            else:
                st.rerun()

def landfill_section(engine):
    """Area saved and percentage progress"""
    st.subheader(t("landfill_reduction"))

    summary = engine.summary()
    st.metric(t("area_reduced"), f"{summary.area_reduced_m2:.3f}")
    st.progress(summary.progress)
    st.caption(f"{summary.percent_reduced:.2f}% {t('percent_reduced')}")

    fig = go.Figure(go.Indicator(
        mode="gauge+number",
        value=summary.percent_reduced,
        number={'suffix': "%", 'valueformat': '.3f'},
        gauge={'axis': {'range': [0, 100]}, 'bar': {'color': "teal"}}
    ))
    fig.update_layout(height=220, margin=dict(t=10, b=10, l=30, r=30))
    st.plotly_chart(fig, use_container_width=True)

def settings_section(engine):
    """Brick and landfill parameters"""
    st.subheader(t("settings"))

    with st.form("settings_form"):
        col1, col2 = st.columns(2)
        proposed = {}
        for i, name in enumerate(SETTING_NAMES):
            with (col1 if i % 2 == 0 else col2):
                proposed[name] = st.number_input(
                    t(name),
                    value=float(engine.get_setting(name)),
                    format="%.4f",
                    key=f"setting_{name}"
                )
        apply_btn = st.form_submit_button(t("apply"))

    if apply_btn:
        rejected = []
        for name, value in proposed.items():
            if value == engine.get_setting(name):
                continue
            result = engine.update_setting(name, value)
            if not result.ok:
                rejected.append(t(name))
        if rejected:
            st.error(f"{t('rejected_setting')}: {', '.join(rejected)}")
        else:
            st.rerun()

def process_steps_section():
    st.subheader(t("process_steps"))
    for n, text in enumerate(PROCESS_STEPS, start=1):
        st.markdown(f"**{n}.** {text}")

def main():
    """Main application"""
    engine = get_engine()

    sidebar_controls(engine)

    st.title(f"🧱 {t('app_title')}")
    st.markdown(f"### {t('welcome_message')}")
    st.caption(f"Total: {format_number(engine.total_available_waste())} kg")

    analytics_section(engine)
    st.divider()
    composition_section(engine)
    st.divider()
    landfill_section(engine)
    st.divider()
    settings_section(engine)
    st.divider()
    process_steps_section()

if __name__ == "__main__":
    main()
