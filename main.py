import argparse
import logging
import sys

from calculators import branch, service
from core.converters import convert_length_unit, convert_power_unit, current_from_watts, fahrenheit_to_celsius
from core.errors import SizingError
from core.models import ApplianceLoad, ConductorMaterial, InsulationRating, ProtectionType
from core.report import build_workbook, report_filename


def _material(args) -> ConductorMaterial:
    return ConductorMaterial(args.material)


def _ambient(args) -> float:
    if args.ambient_f is not None:
        return fahrenheit_to_celsius(args.ambient_f)
    return args.ambient


def _length(args) -> float:
    return convert_length_unit(args.length, args.length_unit)


def print_result(name, result):
    print("-" * 100)
    print(f"{'Circuit':<18} | {'Size':<10} | {'Ampacity':<8} | {'Breaker':<7} | {'Ground':<6} | {'% VD':<6} | Notes")
    print("-" * 100)
    warn = " (!)" if not result.compliant else ""
    print(
        f"{name:<18} | {result.conductor.label:<10} | {result.conductor_ampacity:<8.1f} | "
        f"{result.device_rating:<7} | {result.grounding_conductor:<6} | {result.voltage_drop_percent:<6.2f}{warn} | "
        f"{result.reference_notes}"
    )
    for w in result.warnings:
        print(f"  [!] {w}")


def cmd_wire(args):
    voltage = args.voltage
    watts, amps = convert_power_unit(args.power, args.unit, voltage, args.phases, args.pf)
    current = amps if amps is not None else current_from_watts(watts, voltage, args.phases, args.pf)
    result = branch.wire_size(
        current, voltage, _length(args), phase_count=args.phases, continuous=args.continuous,
        material=_material(args), temp_rating=InsulationRating(args.rating), ambient_temp=_ambient(args),
        conductor_count=args.conductors, max_voltage_drop=args.max_vd,
    )
    print_result(args.name, result)
    return [(args.name, result)], None, None


def cmd_motor(args):
    result = branch.motor_circuit(
        args.hp, args.voltage, _length(args), phase_count=args.phases,
        protection_type=ProtectionType(args.protection), material=_material(args),
        temp_rating=InsulationRating(args.rating), ambient_temp=_ambient(args),
        conductor_count=args.conductors, nameplate_current=args.nameplate, service_factor=args.sf,
    )
    name = f"{args.hp:g} HP motor"
    print_result(name, result)
    print(f"Overload (NEC 430.32):    {result.overload_rating:.1f} A")
    print(f"Disconnect (NEC 430.110): {result.disconnect_rating} A minimum")
    return [(name, result)], None, None


def cmd_subpanel(args):
    result = branch.subpanel_feeder(
        args.rating_a, _length(args), calculated_load=args.load, voltage=args.voltage,
        material=_material(args), temp_rating=InsulationRating(args.rating), ambient_temp=_ambient(args),
    )
    name = f"{args.rating_a}A subpanel"
    print_result(name, result)
    return [(name, result)], None, None


def cmd_ev(args):
    result = branch.ev_charger(
        args.amps, _length(args), voltage=args.voltage, material=_material(args), ambient_temp=_ambient(args)
    )
    print_result("EV charger", result)
    return [("EV charger", result)], None, None


def _parse_appliance(text: str) -> ApplianceLoad:
    # NAME:WATTS[:motor][:continuous]
    parts = text.split(":")
    if len(parts) < 2:
        raise argparse.ArgumentTypeError(f"expected NAME:WATTS[:motor][:continuous], got {text!r}")
    flags = {p.strip().lower() for p in parts[2:]}
    try:
        watts = float(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"bad wattage in {text!r}") from None
    return ApplianceLoad(parts[0].strip(), watts=watts, is_motor="motor" in flags, is_continuous="continuous" in flags)


def cmd_load(args):
    appliances = list(args.appliance or [])
    for idx in args.preset or []:
        appliances.append(service.RESIDENTIAL_APPLIANCES[idx])
    res = service.residential_load(args.area, appliances, existing_service=args.existing, voltage=args.voltage)
    d = res.demand
    print(f"Total connected load:  {d.connected_load:,.0f} VA")
    print(f"Demand load:           {d.demand_va:,.0f} VA ({d.reference_notes})")
    print(f"Demand current:        {d.demand_current:.1f} A")
    print(f"Existing service:      {res.existing_service} A ({res.utilization_percent:.1f}% utilized)")
    print(f"Recommended service:   {res.recommended_service} A")
    for w in res.warnings:
        print(f"  [!] {w}")
    return [], d, None


def cmd_service(args):
    res = service.service_entrance(
        args.watts, voltage=args.voltage, phase_count=args.phases,
        length=_length(args) if args.length else None, growth_percent=args.growth,
        existing_rating=args.existing, material=_material(args), residential=not args.commercial,
    )
    print(f"Demand current:        {res.demand_current:.1f} A")
    print(f"Design current:        {res.design_current:.1f} A (+{args.growth:g}% growth)")
    print(f"Service rating:        {res.service_rating} A ({res.utilization_percent:.1f}% loaded)")
    print(f"Service conductors:    {res.conductor.label} ({res.conductor_ampacity:.0f} A)")
    print(f"GEC (NEC 250.66):      {res.grounding_conductor} AWG")
    if res.voltage_drop_percent is not None:
        print(f"Voltage drop:          {res.voltage_drop_percent:.2f}%")
    for w in res.warnings:
        print(f"  [!] {w}")
    return [], None, res


def cmd_ampacity(args):
    out = branch.ampacity_lookup(args.size, InsulationRating(args.rating), _ambient(args), args.conductors)
    for material, sel in out.items():
        if sel is None:
            print(f"{material.value:<9}: not available")
            continue
        print(
            f"{material.value:<9}: {sel.derated_ampacity:.1f} A "
            f"(base {sel.conductor.ampacity(InsulationRating(args.rating))} A x {sel.temp_factor} x {sel.bundling_factor})"
        )
    return [], None, None


def cmd_vdrop(args):
    res = branch.voltage_drop_report(
        args.size, args.amps, args.voltage, _length(args), phase_count=args.phases, material=_material(args)
    )
    print(f"Voltage drop:    {res.drop_volts:.2f} V ({res.drop_percent:.2f}%)")
    print(f"Voltage at load: {res.voltage_at_load:.1f} V")
    print(f"Rating:          {res.rating}")
    return [], None, None


def _add_install_args(p, length=True):
    if length:
        p.add_argument("--length", type=float, required=True, help="one-way run length")
        p.add_argument("--length-unit", default="ft", choices=["ft", "m", "yd"])
    p.add_argument("--material", default="copper", choices=[m.value for m in ConductorMaterial])
    p.add_argument("--rating", type=int, default=75, choices=[60, 75, 90], help="insulation temperature rating (C)")
    p.add_argument("--ambient", type=float, default=30.0, help="ambient temperature (C)")
    p.add_argument("--ambient-f", type=float, help="ambient temperature (F), overrides --ambient")
    p.add_argument("--conductors", type=int, default=3, help="current-carrying conductors in the raceway")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="NEC conductor and overcurrent protection sizing")
    parser.add_argument("--xlsx", nargs="?", const="", help="export an Excel report (optional file name)")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("wire", help="size a branch circuit or feeder")
    p.add_argument("power", type=float)
    p.add_argument("--unit", default="A", help="W, kW, HP, A, VA or kVA")
    p.add_argument("--voltage", type=float, default=240.0)
    p.add_argument("--phases", type=int, default=1, choices=[1, 3])
    p.add_argument("--pf", type=float, default=1.0)
    p.add_argument("--continuous", action="store_true")
    p.add_argument("--max-vd", type=float, help="voltage drop limit (%%)")
    p.add_argument("--name", default="Circuit 1")
    _add_install_args(p)
    p.set_defaults(func=cmd_wire)

    p = sub.add_parser("motor", help="motor branch circuit (NEC 430)")
    p.add_argument("hp", type=float)
    p.add_argument("--voltage", type=int, default=460)
    p.add_argument("--phases", type=int, default=3, choices=[1, 3])
    p.add_argument("--protection", default=ProtectionType.INVERSE_TIME.value, choices=[t.value for t in ProtectionType])
    p.add_argument("--nameplate", type=float, help="nameplate full-load current for overloads (A)")
    p.add_argument("--sf", type=float, default=1.0, help="motor service factor")
    _add_install_args(p)
    p.set_defaults(func=cmd_motor)

    p = sub.add_parser("subpanel", help="subpanel feeder (NEC 215, 225)")
    p.add_argument("rating_a", type=int, metavar="rating", help="subpanel rating (A)")
    p.add_argument("--load", type=float, help="calculated subpanel load (A)")
    p.add_argument("--voltage", type=float, default=240.0)
    _add_install_args(p)
    p.set_defaults(func=cmd_subpanel)

    p = sub.add_parser("ev", help="EV charger circuit (NEC 625)")
    p.add_argument("amps", type=float)
    p.add_argument("--voltage", type=float, default=240.0)
    _add_install_args(p)
    p.set_defaults(func=cmd_ev)

    p = sub.add_parser("load", help="dwelling load calculation (NEC 220.82)")
    p.add_argument("--area", type=float, required=True, help="floor area (sq ft)")
    p.add_argument("--appliance", action="append", type=_parse_appliance, help="NAME:WATTS[:motor][:continuous]")
    p.add_argument(
        "--preset", action="append", type=int, choices=range(len(service.RESIDENTIAL_APPLIANCES)),
        help="index into the residential appliance list",
    )
    p.add_argument("--existing", type=int, default=200, help="existing service rating (A)")
    p.add_argument("--voltage", type=float, default=240.0)
    p.set_defaults(func=cmd_load)

    p = sub.add_parser("service", help="service entrance sizing")
    p.add_argument("watts", type=float, help="calculated load (W)")
    p.add_argument("--voltage", type=float, default=240.0)
    p.add_argument("--phases", type=int, default=1, choices=[1, 3])
    p.add_argument("--length", type=float, help="service drop / lateral length")
    p.add_argument("--length-unit", default="ft", choices=["ft", "m", "yd"])
    p.add_argument("--growth", type=float, default=25.0, help="future growth allowance (%%)")
    p.add_argument("--existing", type=int)
    p.add_argument("--commercial", action="store_true")
    p.add_argument("--material", default="copper", choices=[m.value for m in ConductorMaterial])
    p.set_defaults(func=cmd_service)

    p = sub.add_parser("ampacity", help="derated ampacity of a wire size")
    p.add_argument("size")
    _add_install_args(p, length=False)
    p.set_defaults(func=cmd_ampacity)

    p = sub.add_parser("vdrop", help="voltage drop on a given wire size")
    p.add_argument("size")
    p.add_argument("amps", type=float)
    p.add_argument("--voltage", type=float, default=120.0)
    p.add_argument("--phases", type=int, default=1, choices=[1, 3])
    p.add_argument("--length", type=float, required=True)
    p.add_argument("--length-unit", default="ft", choices=["ft", "m", "yd"])
    p.add_argument("--material", default="copper", choices=[m.value for m in ConductorMaterial])
    p.set_defaults(func=cmd_vdrop)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        circuits, demand, service_res = args.func(args)
    except SizingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.xlsx is not None:
        filename = args.xlsx or report_filename()
        build_workbook(circuits, demand=demand, service=service_res).save(filename)
        print(f"\n[INFO] Excel report: {filename}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
