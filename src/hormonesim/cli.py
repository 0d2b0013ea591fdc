import argparse
import csv
import logging
import sys
from typing import List, Optional

from .calibration import calibrate
from .catalog import default_catalog
from .config import LOG_LEVEL
from .effects import effect_indices_for, weekly_effect_summary
from .errors import HormoneSimError
from .metrics import auc_trapz, cavg, cmax_tmax
from .simulate import default_window, run_treatment
from .types import BloodSample, CalibrationParameters, DoseSpec, Route, SimpleTreatment, TimeWindow
from .visualization import build_visualization


def _sample(text: str) -> BloodSample:
    """Parse DAY=VALUE."""
    try:
        day, value = text.split("=", 1)
        return BloodSample(time_d=float(day), value=float(value))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected DAY=VALUE, got '{text}'")


def _add_treatment_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("substance", help="Compound or blend id (see 'catalog')")
    p.add_argument("--dose", type=float, required=True, help="Dose per administration (mg)")
    p.add_argument("--every", type=float, required=True, help="Dosing interval (days)")
    p.add_argument("--route", choices=[r.value for r in Route], default=Route.INTRAMUSCULAR.value,
                   help="Administration route")
    p.add_argument("--start", type=float, default=0.0, help="Day of the first dose")
    p.add_argument("--baseline", type=float, default=0.0, help="Endogenous level added to every prediction")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hormonesim", description="HormoneSim - hormone PK simulation and calibration")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("catalog", help="List compounds and blends")

    sim = sub.add_parser("simulate", help="Simulate a recurring dose")
    _add_treatment_args(sim)
    sim.add_argument("--days", type=float, default=None, help="Simulated days (default 90)")
    sim.add_argument("--step", type=float, default=None, help="Time step (days)")
    sim.add_argument("--factor", type=float, default=1.0, help="Calibration factor")
    sim.add_argument("--csv", type=str, default=None, help="Write day,total,<compound...> rows here")

    cal = sub.add_parser("calibrate", help="Fit the calibration factor to blood levels")
    _add_treatment_args(cal)
    cal.add_argument("--sample", type=_sample, action="append", required=True, metavar="DAY=VALUE",
                     help="Measured level on a day (repeatable)")
    cal.add_argument("--unit", default="ng/dL", help="Unit of the sample values")
    cal.add_argument("--fit-rates", action="store_true", help="Also refit ke/ka as a diagnostic")
    return parser


def _treatment(args) -> SimpleTreatment:
    dose = DoseSpec(substance_id=args.substance, amount_mg=args.dose, route=Route(args.route),
                    interval_d=args.every, start_d=args.start)
    return SimpleTreatment(name=args.substance, dose=dose)


def _cmd_catalog(catalog, out) -> None:
    for c in catalog.compounds:
        routes = ", ".join(r.value for r in c.supported_routes)
        out.write(f"{c.compound_id:40s} {c.display_name:40s} t1/2={c.half_life_d:g} d  [{routes}]\n")
    for b in catalog.blends:
        out.write(f"{b.blend_id:40s} {b.name:40s} {catalog.composition_description(b.blend_id)}\n")


def _cmd_simulate(args, catalog, out) -> None:
    treatment = _treatment(args)
    window = default_window(treatment, args.step)
    if args.days is not None:
        window = TimeWindow(window.start_d, window.start_d + args.days, window.step_d)
    calibration = CalibrationParameters(factor=args.factor, baseline=args.baseline)
    result = run_treatment(treatment, catalog, window, calibration)

    if args.csv:
        ids = list(result.per_compound)
        with open(args.csv, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["day", "total"] + ids)
            for i, t in enumerate(result.times):
                writer.writerow([t, result.total[i]] + [result.per_compound[c][i] for c in ids])

    peak, t_peak = cmax_tmax(result.times, result.total)
    weekly = weekly_effect_summary(treatment, catalog)
    stats = build_visualization(result, catalog, effect_indices_for(result, catalog)).statistics()
    out.write(f"{catalog.display_name(args.substance)}: {args.dose:g} mg every {args.every:g} d ({Route(args.route).display_name})\n")
    out.write(f"  Cmax {peak:.4g} at day {t_peak:g}; Cavg {cavg(result.total):.4g}; "
              f"AUC {auc_trapz(result.times, result.total):.4g}\n")
    out.write(f"  anabolic:androgenic {stats.anabolic_to_androgenic_ratio:.3g} "
              f"(weekly index {weekly.anabolic:.4g} / {weekly.androgenic:.4g})\n")


def _cmd_calibrate(args, catalog, out) -> None:
    samples = [BloodSample(s.time_d, s.value, args.unit) for s in args.sample]
    result = calibrate(_treatment(args), catalog, samples, current=CalibrationParameters(baseline=args.baseline),
                       with_rates=args.fit_rates)
    if not result.performed:
        out.write(f"No calibration performed: {result.reason}\n")
        return
    out.write(f"factor {result.previous_factor:.4g} -> {result.factor:.4g}\n")
    out.write(f"RMSE {result.rmse_before:.4g} -> {result.rmse_after:.4g}")
    if result.improvement_pct is not None:
        out.write(f" ({result.improvement_pct:.1f}% better)")
    out.write("\n")
    if result.correlation is not None:
        out.write(f"correlation {result.correlation:.3f}\n")
    d = result.diagnostic
    if d is not None:
        out.write(f"{d.compound_id}: ke {d.catalog_ke_per_d:.4g} -> {d.ke_per_d:.4g} /d, "
                  f"ka {d.catalog_ka_per_d:.4g} -> {d.ka_per_d:.4g} /d (RMSE {d.rmse:.4g})\n")
    for note in result.warnings:
        out.write(f"note: {note}\n")


def run_cli(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else LOG_LEVEL.upper(),
                        format="%(levelname)s %(name)s: %(message)s")

    catalog = default_catalog()
    out = sys.stdout
    try:
        if args.command == "catalog":
            _cmd_catalog(catalog, out)
        elif args.command == "simulate":
            _cmd_simulate(args, catalog, out)
        else:
            _cmd_calibrate(args, catalog, out)
    except HormoneSimError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(run_cli())
