import datetime
import io
from typing import Iterable, Optional, Sequence, Tuple

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from core.components import ServiceResult, SizingResult
from core.models import ConductorMaterial, DemandLoadResult
from standards.nec_tables import NEC_250_122, NEC_TABLES, ReferenceTables

CircuitRecord = Tuple[str, SizingResult]

CIRCUIT_COLUMNS = [
    "Circuit", "Amps", "Voltage", "Phases", "Length (ft)", "Class", "Material", "Rating",
    "Ambient (C)", "Conductors", "Size", "Ampacity", "Breaker", "Ground", "% VD",
    "Compliant", "Warnings", "Notes",
]

HEADER_FILL = PatternFill(start_color="DDDDDD", end_color="DDDDDD", fill_type="solid")
HEADER_FONT = Font(bold=True)


def circuit_row(name: str, result: SizingResult) -> dict:
    circuit = result.circuit
    return {
        "Circuit": name,
        "Amps": round(circuit.current, 2),
        "Voltage": circuit.voltage,
        "Phases": circuit.phase_count,
        "Length (ft)": circuit.length,
        "Class": circuit.load_classification.value,
        "Material": circuit.material.value,
        "Rating": f"{circuit.temp_rating.value} C",
        "Ambient (C)": circuit.ambient_temp,
        "Conductors": circuit.conductor_count,
        "Size": result.size,
        "Ampacity": round(result.conductor_ampacity, 1),
        "Breaker": result.device_rating,
        "Ground": result.grounding_conductor,
        "% VD": round(result.voltage_drop_percent, 2),
        "Compliant": result.compliant,
        "Warnings": "; ".join(result.warnings),
        "Notes": result.reference_notes,
    }


def circuits_frame(records: Iterable[CircuitRecord]) -> pd.DataFrame:
    return pd.DataFrame([circuit_row(*r) for r in records], columns=CIRCUIT_COLUMNS)


def demand_frame(demand: DemandLoadResult) -> pd.DataFrame:
    return pd.DataFrame([
        {"Parameter": "General lighting (VA)", "Value": demand.general_lighting},
        {"Parameter": "Small appliance circuits (VA)", "Value": demand.small_appliance},
        {"Parameter": "Laundry circuit (VA)", "Value": demand.laundry},
        {"Parameter": "Fixed appliances (VA)", "Value": demand.appliance_load},
        {"Parameter": "Continuous portion (VA)", "Value": demand.continuous_load},
        {"Parameter": "Total connected (VA)", "Value": demand.connected_load},
        {"Parameter": "After demand factors (VA)", "Value": demand.demand_load},
        {"Parameter": "Largest motor 25% (VA)", "Value": demand.motor_addition},
        {"Parameter": "Demand load (VA)", "Value": demand.demand_va},
        {"Parameter": "Demand current (A)", "Value": round(demand.demand_current, 2)},
    ])


def service_frame(service: ServiceResult) -> pd.DataFrame:
    vd = "-" if service.voltage_drop_percent is None else f"{service.voltage_drop_percent:.2f}%"
    return pd.DataFrame([
        {"Parameter": "Demand current (A)", "Value": round(service.demand_current, 2)},
        {"Parameter": "Design current incl. growth (A)", "Value": round(service.design_current, 2)},
        {"Parameter": "Service rating (A)", "Value": service.service_rating},
        {"Parameter": "Service conductor", "Value": service.conductor.label},
        {"Parameter": "Conductor ampacity (A)", "Value": round(service.conductor_ampacity, 1)},
        {"Parameter": "Grounding electrode conductor", "Value": service.grounding_conductor},
        {"Parameter": "Utilization", "Value": f"{service.utilization_percent:.1f}%"},
        {"Parameter": "Voltage drop", "Value": vd},
        {"Parameter": "Upgrade required", "Value": "YES" if service.upgrade_required else "NO"},
        {"Parameter": "Warnings", "Value": "; ".join(service.warnings)},
        {"Parameter": "References", "Value": service.reference_notes},
    ])


def _style_header(ws, row: int = 1):
    for cell in ws[row]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL


def _append_frame(ws, df: pd.DataFrame):
    ws.append(list(df.columns))
    header_row = ws.max_row
    for values in df.itertuples(index=False):
        # numpy scalars -> builtins
        ws.append([v.item() if hasattr(v, "item") else v for v in values])
    _style_header(ws, header_row)


def build_workbook(
    circuits: Sequence[CircuitRecord] = (),
    demand: Optional[DemandLoadResult] = None,
    service: Optional[ServiceResult] = None,
    tables: ReferenceTables = NEC_TABLES,
) -> Workbook:
    wb = Workbook()

    # --- Sheet 1: Branch circuits ---
    ws1 = wb.active
    ws1.title = "Branch Circuits"
    _append_frame(ws1, circuits_frame(circuits))
    for col in ws1.columns:
        ws1.column_dimensions[col[0].column_letter].width = 15

    # --- Sheet 2: Load / service summary ---
    if demand is not None or service is not None:
        ws2 = wb.create_sheet("Service Summary")
        ws2.append(["SERVICE CALCULATION (NEC 220.82 / 230.42)"])
        ws2.append(["Date:", datetime.datetime.now().strftime("%Y-%m-%d %H:%M")])
        ws2.append([])
        if demand is not None:
            _append_frame(ws2, demand_frame(demand))
            ws2.append([])
        if service is not None:
            _append_frame(ws2, service_frame(service))
        ws2.column_dimensions["A"].width = 34
        ws2.column_dimensions["B"].width = 40

    # --- Sheet 3: NEC 310.16 reference ---
    ws3 = wb.create_sheet("Ref NEC 310.16")
    ws3.append(["NEC Table 310.16 - Allowable Ampacities (30°C ambient)"])
    ws3.append(["Material", "Size", "60°C", "75°C", "90°C", "Ohms/kft"])
    _style_header(ws3, 2)
    for material in ConductorMaterial:
        for entry in tables.catalog(material):
            ws3.append([
                material.value, entry.size, entry.ampacity_60, entry.ampacity_75,
                entry.ampacity_90, entry.resistance,
            ])

    # --- Sheet 4: NEC 250.122 reference ---
    ws4 = wb.create_sheet("Ref NEC 250.122")
    ws4.append(["NEC Table 250.122 - Equipment Grounding Conductors"])
    ws4.append(["OCPD (A)", "Copper", "Aluminum"])
    _style_header(ws4, 2)
    for row in NEC_250_122:
        ws4.append(list(row))

    return wb


def workbook_bytes(*args, **kwargs) -> bytes:
    output = io.BytesIO()
    build_workbook(*args, **kwargs).save(output)
    return output.getvalue()


def report_filename(prefix: str = "NEC_Sizing") -> str:
    return f"{prefix}_{datetime.datetime.now().strftime('%Y%m%d_%H%M%S')}.xlsx"
