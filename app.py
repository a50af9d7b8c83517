import pandas as pd
import streamlit as st

from calculators import branch, service
from core.errors import SizingError
from core.models import (
    ApplianceLoad, Circuit, ConductorMaterial, InsulationRating, LoadClassification, ProtectionType,
)
from core.report import report_filename, workbook_bytes
from standards.nec import NECCalculator

ENGINE = NECCalculator()

# --- Page Config ---
st.set_page_config(
    page_title="NEC Wire & Breaker Sizing",
    page_icon="⚡",
    layout="wide",
    initial_sidebar_state="expanded"
)

st.markdown("""
<style>
    .main-header { font-family: 'Inter', sans-serif; color: #1E3A8A; font-weight: 700; }
    .stDataFrame { border-radius: 10px; overflow: hidden; }
</style>
""", unsafe_allow_html=True)

# --- Session State Init ---
INPUT_COLUMNS = [
    "Name", "Amps", "Voltage", "Phases", "Length (ft)", "Class", "Protection",
    "Material", "Rating", "Ambient (C)", "Conductors",
]
RESULT_COLUMNS = ["Size", "Ampacity", "Breaker", "Ground", "% VD", "Notes"]
CLASS_OPTIONS = [c.value for c in LoadClassification]
PROTECTION_OPTIONS = [p.value for p in ProtectionType]
MATERIAL_OPTIONS = [m.value for m in ConductorMaterial]

if 'circuits_df' not in st.session_state:
    st.session_state.circuits_df = pd.DataFrame(columns=INPUT_COLUMNS)


def row_to_circuit(row) -> Circuit:
    classification = LoadClassification(row["Class"])
    protection = None
    if classification == LoadClassification.MOTOR:
        chosen = row["Protection"]
        protection = ProtectionType(chosen) if isinstance(chosen, str) and chosen else ProtectionType.INVERSE_TIME
    return Circuit(
        voltage=float(row["Voltage"]),
        phase_count=int(row["Phases"]),
        length=float(row["Length (ft)"]),
        current=float(row["Amps"]),
        ambient_temp=float(row["Ambient (C)"]),
        material=ConductorMaterial(row["Material"]),
        temp_rating=InsulationRating(int(row["Rating"])),
        conductor_count=int(row["Conductors"]),
        load_classification=classification,
        protection_type=protection,
    )


# --- Helper: Calculate Row ---
def calculate_row_results(row):
    try:
        result = branch.size_with_retry(row_to_circuit(row))
    except (SizingError, TypeError, ValueError) as e:
        return pd.Series({"Notes": f"Error: {e}"})

    notes = result.reference_notes
    if result.warnings:
        notes = " ; ".join(result.warnings) + " | " + notes
    return pd.Series({
        "Size": result.conductor.label,
        "Ampacity": round(result.conductor_ampacity, 1),
        "Breaker": result.device_rating,
        "Ground": result.grounding_conductor,
        "% VD": float(f"{result.voltage_drop_percent:.2f}"),
        "Notes": notes,
        "_result": result,  # hidden, for export
    })


# --- Sidebar: quick calculators ---
with st.sidebar:
    st.title("Quick Calculators")

    st.subheader("🔌 EV Charger")
    ev = st.selectbox("Charger", branch.EV_CHARGER_PRESETS, format_func=lambda p: p.name)
    ev_len = st.number_input("Distance to panel (ft)", 1.0, 1000.0, 50.0, key="ev_len")
    if st.button("Add EV circuit", use_container_width=True):
        new_row = {
            "Name": ev.name, "Amps": ev.amps, "Voltage": ev.voltage, "Phases": 1,
            "Length (ft)": ev_len, "Class": "continuous", "Protection": None,
            "Material": "copper", "Rating": 75, "Ambient (C)": 30.0, "Conductors": 3,
        }
        st.session_state.circuits_df = pd.concat([st.session_state.circuits_df, pd.DataFrame([new_row])], ignore_index=True)
        st.rerun()

    st.subheader("🛁 Hot Tub")
    tub = st.selectbox("Size", branch.HOT_TUB_PRESETS, format_func=lambda p: p.name)
    tub_len = st.number_input("Distance to panel (ft)", 1.0, 1000.0, 50.0, key="tub_len")
    if st.button("Add hot tub circuit", use_container_width=True):
        new_row = {
            "Name": f"Hot tub {tub.name}", "Amps": tub.amps, "Voltage": tub.voltage, "Phases": 1,
            "Length (ft)": tub_len, "Class": "continuous", "Protection": None,
            "Material": "copper", "Rating": 75, "Ambient (C)": 30.0, "Conductors": 3,
        }
        st.session_state.circuits_df = pd.concat([st.session_state.circuits_df, pd.DataFrame([new_row])], ignore_index=True)
        st.rerun()

    st.subheader("🏚️ Subpanel Feeder")
    sp_rating = st.selectbox("Subpanel rating (A)", branch.SUBPANEL_RATINGS, index=1)
    sp_len = st.number_input("Distance to main panel (ft)", 1.0, 1000.0, 100.0, key="sp_len")
    sp_load = st.number_input("Calculated load (A)", 0.0, 400.0, 0.0, key="sp_load")
    try:
        sp = branch.subpanel_feeder(sp_rating, sp_len, calculated_load=sp_load or None)
        st.metric("Feeder", sp.conductor.label, f"{sp.voltage_drop_percent:.2f} % VD", delta_color="off")
        st.caption(f"Breaker {sp.device_rating} A, ground {sp.grounding_conductor} | {sp.reference_notes}")
        for w in sp.warnings:
            st.warning(w)
    except SizingError as e:
        st.error(str(e))

    st.subheader("📐 Voltage Drop")
    vd_size = st.text_input("Wire size", "12")
    vd_amps = st.number_input("Current (A)", 0.1, 5000.0, 20.0)
    vd_volts = st.number_input("Voltage (V)", 1.0, 1000.0, 120.0)
    vd_len = st.number_input("One-way length (ft)", 1.0, 5000.0, 50.0, key="vd_len")
    try:
        vd = branch.voltage_drop_report(vd_size, vd_amps, vd_volts, vd_len)
        st.metric("Voltage drop", f"{vd.drop_percent:.2f} %", f"{vd.drop_volts:.2f} V", delta_color="inverse")
        st.caption(vd.rating)
    except SizingError as e:
        st.error(str(e))

# --- Main Area ---
st.markdown("<h1 class='main-header'>⚡ NEC Wire & Breaker Sizing</h1>", unsafe_allow_html=True)
st.markdown("---")

with st.expander("➕ Add Circuit", expanded=True):
    c_name, c_cls, c_prot = st.columns([3, 1.5, 1.5])
    name = c_name.text_input("Circuit name", "Circuit 1")
    cls = c_cls.selectbox("Load class", CLASS_OPTIONS)
    prot = c_prot.selectbox("Motor protection", PROTECTION_OPTIONS, disabled=cls != "motor")

    st.markdown("##### ⚡ Electrical")
    c_a, c_v, c_ph, c_hp = st.columns(4)
    phases = c_ph.radio("Phases", [1, 3], horizontal=True)
    voltage = c_v.number_input("Voltage (V)", 1.0, 1000.0, 240.0 if phases == 1 else 480.0, step=10.0)
    hp = c_hp.number_input("Motor HP (table FLC)", 0.0, 100.0, 0.0, step=0.5, disabled=cls != "motor")
    amps = c_a.number_input("Current (A)", 0.0, 5000.0, 20.0, step=1.0)

    st.markdown("##### 📏 Installation")
    c_L, c_m, c_r, c_t, c_n = st.columns(5)
    length = c_L.number_input("One-way length (ft)", 1.0, 5000.0, 50.0)
    material = c_m.selectbox("Material", MATERIAL_OPTIONS)
    rating = c_r.selectbox("Insulation", [75, 90, 60])
    temp = c_t.number_input("Ambient (°C)", value=30.0, step=1.0)
    group = c_n.number_input("Conductors in raceway", 1, 60, 3)

    if st.button("Add to table", type="primary", use_container_width=True):
        if cls == "motor" and hp > 0:
            try:
                amps = ENGINE.motor_full_load_current(hp, int(voltage), phases)
            except SizingError as e:
                st.error(str(e))
                st.stop()
        new_row = {
            "Name": name, "Amps": amps, "Voltage": voltage, "Phases": phases,
            "Length (ft)": length, "Class": cls, "Protection": prot if cls == "motor" else None,
            "Material": material, "Rating": rating, "Ambient (C)": temp, "Conductors": group,
        }
        st.session_state.circuits_df = pd.concat([st.session_state.circuits_df, pd.DataFrame([new_row])], ignore_index=True)
        st.rerun()

st.markdown("### 📋 Circuit Schedule (editable)")
if st.button("🗑️ Clear table", type="secondary"):
    st.session_state.circuits_df = pd.DataFrame(columns=INPUT_COLUMNS)
    st.rerun()
st.caption("Edit any cell to recalculate. Select rows and press Delete to remove them.")

df_to_show = st.session_state.circuits_df.copy()
if not df_to_show.empty:
    results = df_to_show.apply(calculate_row_results, axis=1)
    df_full = pd.concat([df_to_show, results], axis=1)
else:
    df_full = pd.concat([df_to_show, pd.DataFrame(columns=RESULT_COLUMNS + ["_result"])], axis=1)

column_config = {
    "Amps": st.column_config.NumberColumn(min_value=0, step=0.1, format="%.1f"),
    "Voltage": st.column_config.NumberColumn(step=10),
    "Phases": st.column_config.SelectboxColumn(options=[1, 3], width="small"),
    "Class": st.column_config.SelectboxColumn(options=CLASS_OPTIONS, width="small"),
    "Protection": st.column_config.SelectboxColumn(options=PROTECTION_OPTIONS, width="medium"),
    "Material": st.column_config.SelectboxColumn(options=MATERIAL_OPTIONS, width="small"),
    "Rating": st.column_config.SelectboxColumn(options=[60, 75, 90], width="small"),
    "Conductors": st.column_config.NumberColumn(min_value=1, step=1, width="small"),
}

edited_df = st.data_editor(
    df_full.drop(columns=["_result"], errors="ignore"),
    key="editor",
    use_container_width=True,
    num_rows="dynamic",
    column_config=column_config,
    disabled=RESULT_COLUMNS,
    height=400
)

edited_inputs = edited_df[INPUT_COLUMNS]
if not edited_inputs.equals(st.session_state.circuits_df):
    st.session_state.circuits_df = edited_inputs
    st.rerun()

# --- Dwelling Load Section ---
st.markdown("---")
st.subheader("🏠 Dwelling Load & Service (NEC 220.82)")

c_area, c_exist, c_growth = st.columns(3)
area = c_area.number_input("Floor area (sq ft)", 0.0, 50000.0, 2500.0, step=100.0)
existing = c_exist.selectbox("Existing service (A)", [100, 125, 150, 200, 225, 300, 400], index=3)
growth = c_growth.number_input("Growth allowance (%)", 0.0, 100.0, 25.0, step=5.0)

picked = st.multiselect(
    "Appliances", service.RESIDENTIAL_APPLIANCES, format_func=lambda a: a.name,
    default=[service.RESIDENTIAL_APPLIANCES[0], service.RESIDENTIAL_APPLIANCES[1], service.RESIDENTIAL_APPLIANCES[3]],
)
custom_df = st.data_editor(
    pd.DataFrame(columns=["Appliance", "Watts", "Motor", "Continuous"]),
    key="custom_loads", num_rows="dynamic", use_container_width=True,
    column_config={
        "Watts": st.column_config.NumberColumn(min_value=0, step=100),
        "Motor": st.column_config.CheckboxColumn(default=False),
        "Continuous": st.column_config.CheckboxColumn(default=False),
    },
)
custom = [
    ApplianceLoad(str(r["Appliance"]), watts=float(r["Watts"]), is_motor=bool(r["Motor"]), is_continuous=bool(r["Continuous"]))
    for _, r in custom_df.dropna(subset=["Watts"]).iterrows()
]

demand = None
service_res = None
try:
    load_res = service.residential_load(area, list(picked) + custom, existing_service=existing)
    demand = load_res.demand
    service_res = ENGINE.size_service(
        demand.demand_current, existing_rating=existing, growth_percent=growth,
    )
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Demand load", f"{demand.demand_va / 1000:.1f} kVA")
    c2.metric("Demand current", f"{demand.demand_current:.1f} A", f"{load_res.utilization_percent:.0f}% of existing")
    c3.metric("Recommended service", f"{service_res.service_rating} A")
    c4.metric("Service conductors", service_res.conductor.label)
    st.caption(f"{demand.reference_notes} | {service_res.reference_notes}")
    for w in service.dwelling_warnings(load_res, service_res):
        st.warning(w)
except SizingError as e:
    st.error(str(e))

# --- Export ---
records = []
if "_result" in df_full.columns:
    records = [(n, r) for n, r in zip(df_full["Name"], df_full["_result"]) if hasattr(r, "conductor")]

st.download_button(
    "📥 Download report (Excel)",
    data=workbook_bytes(records, demand=demand, service=service_res),
    file_name=report_filename(),
    mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    help="Circuit schedule, dwelling service calculation and NEC reference tables."
)
