"""
Clinic Module Control CLI
=========================

Administer tenant modules against the configured store.

Usage:
    python -m clinic_modules modules
    python -m clinic_modules provision clinic-42
    python -m clinic_modules status clinic-42
    python -m clinic_modules enable clinic-42 financial
    python -m clinic_modules disable clinic-42 financial --cascade
    python -m clinic_modules set clinic-42 patients appointments clinical financial
    python -m clinic_modules --json status clinic-42

With --json every command prints one JSON document on stdout, and errors
are printed to stderr as {"error": ..., "details": ...}.
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from typing import Any, List, Optional

from clinic_modules.config import ModuleControlConfig
from clinic_modules.engine import ModuleActivationEngine
from clinic_modules.errors import ActiveDependents, ModuleControlError
from clinic_modules.logging_config import configure_logging
from clinic_modules.modules.registry import ModuleCatalog, default_catalog, load_catalog
from clinic_modules.schema import TenantModuleState, ToggleResult
from clinic_modules.storage import create_store

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clinic_modules", description="Clinic module administration")
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("modules", help="List the module catalog")

    provision = sub.add_parser("provision", help="Create module state for a new tenant")
    provision.add_argument("tenant")

    status = sub.add_parser("status", help="Show a tenant's modules")
    status.add_argument("tenant")

    enable = sub.add_parser("enable", help="Enable a module")
    enable.add_argument("tenant")
    enable.add_argument("module")

    disable = sub.add_parser("disable", help="Disable a module")
    disable.add_argument("tenant")
    disable.add_argument("module")
    disable.add_argument("--cascade", action="store_true", help="Also disable active dependents")

    set_cmd = sub.add_parser("set", help="Replace a tenant's active modules")
    set_cmd.add_argument("tenant")
    set_cmd.add_argument("modules", nargs="+")

    return parser


def format_catalog(catalog: ModuleCatalog) -> str:
    """Format the catalog for display."""
    lines = ["=== Module Catalog ===", ""]
    for module in catalog.list_modules():
        flags = " [required]" if module.required else ""
        lines.append(f"  {module.id}: {module.name}{flags}")
        if module.dependencies:
            lines.append(f"      requires: {', '.join(module.dependencies)}")
    return "\n".join(lines)


def format_result(result: ToggleResult, catalog: ModuleCatalog) -> str:
    lines = []
    if not result.changed:
        lines.append("No changes")
    for module_id in result.enabled:
        lines.append(f"  + {module_id}")
    for module_id in result.disabled:
        lines.append(f"  - {module_id}")
    lines.append(f"Active modules: {', '.join(catalog.order(result.active_modules))}")
    return "\n".join(lines)


def state_to_dict(state: TenantModuleState, catalog: ModuleCatalog) -> dict:
    return {
        "tenant_id": state.tenant_id,
        "active_modules": catalog.order(state.active_modules),
        "version": state.version,
    }


def print_json(data: Any, file=None) -> None:
    print(json.dumps(data, ensure_ascii=False), file=file or sys.stdout)


def report_error(args: argparse.Namespace, message: str, details: Optional[dict] = None) -> int:
    if args.json:
        print_json({"error": message, "details": details or {}}, file=sys.stderr)
    else:
        print(f"Error: {message}", file=sys.stderr)
    return 1


def print_result(args: argparse.Namespace, result: ToggleResult, catalog: ModuleCatalog) -> None:
    if args.json:
        print_json(result.to_dict())
    else:
        print(format_result(result, catalog))


async def run(args: argparse.Namespace, config: ModuleControlConfig, catalog: ModuleCatalog) -> int:
    if args.command == "modules":
        if args.json:
            print_json({"modules": [module.to_dict() for module in catalog]})
        else:
            print(format_catalog(catalog))
        return 0

    store = await create_store(config)
    engine = ModuleActivationEngine(catalog, store)
    try:
        if args.command == "provision":
            state = await engine.provision_tenant(args.tenant)
            if args.json:
                print_json(state_to_dict(state, catalog))
            else:
                print(f"Provisioned {args.tenant}: {', '.join(catalog.order(state.active_modules))}")
        elif args.command == "status":
            statuses = await engine.describe_modules(args.tenant)
            if args.json:
                print_json({"tenant_id": args.tenant, "modules": [asdict(s) for s in statuses]})
                return 0
            for status in statuses:
                mark = "x" if status.enabled else " "
                line = f"[{mark}] {status.id}: {status.name}"
                if status.required:
                    line += " (required)"
                elif status.missing_dependencies:
                    line += f" (needs {', '.join(status.missing_dependencies)})"
                elif status.active_dependents:
                    line += f" (used by {', '.join(status.active_dependents)})"
                print(line)
        elif args.command == "enable":
            print_result(args, await engine.request_toggle(args.tenant, args.module, True), catalog)
        elif args.command == "disable":
            if args.cascade:
                result = await engine.request_cascading_disable(args.tenant, args.module)
            else:
                result = await engine.request_toggle(args.tenant, args.module, False)
            print_result(args, result, catalog)
        elif args.command == "set":
            print_result(args, await engine.apply_module_set(args.tenant, args.modules), catalog)
    except ActiveDependents as e:
        report_error(args, e.message, e.details)
        if not args.json:
            print(f"Disable them first, or run: disable {args.tenant} {args.module} --cascade", file=sys.stderr)
        return 1
    except ModuleControlError as e:
        return report_error(args, e.message, e.details)
    finally:
        await store.close()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = ModuleControlConfig.from_env()
    except ValueError as e:
        return report_error(args, str(e))
    configure_logging(config.log_level, config.log_format)

    try:
        catalog = load_catalog(config.catalog_path) if config.catalog_path else default_catalog()
    except ModuleControlError as e:
        return report_error(args, e.message, e.details)

    return asyncio.run(run(args, config, catalog))
