#!/usr/bin/env python3
"""
System Design Simulator Launcher
Run this to see menu, launch the interactive simulator or print preset reports
"""

import sys
import subprocess
import os
from typing import List

from system_design_catalog import PRESETS, fmt_money, fmt_pct, get_preset
from system_design_model import evaluate
from system_design_recommendations import get_recommendations

SIMULATOR_FILE = 'system_design_simulator.py'

MENU = {
    '1': {
        'name': 'System Design Simulator',
        'description': 'Interactive what-if explorer for traffic, scale, cache & DB',
        'concepts': ['Saturation', 'Bottlenecks', 'Tail latency', 'Capacity cost'],
    },
    '2': {
        'name': 'Preset Reports',
        'description': 'Print the evaluated metrics for every preset in this terminal',
        'concepts': ['Baseline', 'Read-heavy', 'Write-heavy', 'Spiky traffic', 'High scale'],
    },
}

def print_banner():
    """Print welcome banner"""
    print("=" * 70)
    print("  🏗️  SYSTEM DESIGN SIMULATOR 🏗️")
    print("=" * 70)
    print()
    print("Explore how configuration choices affect a layered system:")
    print("  • client → load balancer → app tier → cache → database")
    print("  • throughput, latency, error rate and monthly cost")
    print("  • which tier becomes the bottleneck, and what to do about it")
    print()
    print("=" * 70)
    print()

def print_menu():
    """Print launcher menu"""
    print("Available Options:")
    print()

    for key, item in MENU.items():
        print(f"  [{key}] {item['name']}")
        print(f"      {item['description']}")
        print(f"      Concepts: {', '.join(item['concepts'])}")
        print()

    print("  [h] Show help and requirements")
    print("  [q] Quit")
    print()

def check_requirements():
    """Check if required packages are installed"""
    required = ['streamlit', 'plotly', 'numpy', 'pandas']
    missing = []

    for package in required:
        try:
            __import__(package)
        except ImportError:
            missing.append(package)

    if missing:
        print("⚠️  Missing required packages:")
        print()
        for pkg in missing:
            print(f"   • {pkg}")
        print()
        print("Install with:")
        print(f"   pip install {' '.join(missing)}")
        print()
        return False

    return True

def show_help():
    """Show help information"""
    print()
    print("=" * 70)
    print("HELP & REQUIREMENTS")
    print("=" * 70)
    print()
    print("Requirements:")
    print("  • Python 3.9+")
    print("  • streamlit (web UI)")
    print("  • plotly (interactive plots)")
    print("  • numpy (numerical computing)")
    print("  • pandas (data analysis)")
    print()
    print("Installation:")
    print("  pip install -e .")
    print()
    print("Running the simulator:")
    print(f"  streamlit run {SIMULATOR_FILE}")
    print()
    print("Controls:")
    print("  • Pick a preset, then use sliders to adjust one knob at a time")
    print("  • Node colours show each tier's own health")
    print("  • Open the component sections for live values and fixes")
    print("  • The RPS Sweep tab shows where the system breaks")
    print()
    print("=" * 70)
    print()

def format_report(preset_key: str) -> str:
    """Render one preset's evaluation as plain text"""
    preset = get_preset(preset_key)
    result = evaluate(preset.config)
    sat = result.saturation

    lines: List[str] = [
        f"{preset.name}: {preset.description}",
        "-" * 70,
        f"  Status:      {result.status.value.upper()}  (bottleneck: {sat.bottleneck.value.upper()})",
        f"  Traffic:     {round(result.traffic.rps)} rps "
        f"({round(result.traffic.reads)} reads / {round(result.traffic.writes)} writes)",
        f"  Saturation:  app {fmt_pct(sat.app)} · cache {fmt_pct(sat.cache)} · db {fmt_pct(sat.db)}",
        f"  Latency:     p50 {round(result.latency.p50)} ms · p95 {round(result.latency.p95)} ms",
        f"  Errors:      {result.errors.rate * 100:.2f}% ({result.errors.reason})",
        f"  Cost:        {fmt_money(result.cost.monthly_total)} / month",
        "  Hotspots:    " + ", ".join(f"{h.label} ({h.severity.value})" for h in result.diagram.hotspots),
    ]

    for note in result.latency.notes:
        lines.append(f"  Note:        {note}")

    for rec in get_recommendations(result, preset.config):
        lines.append(f"  → {rec.title}: {'; '.join(rec.actions)}")

    return "\n".join(lines)

def print_reports():
    """Print a report for every preset"""
    for key in PRESETS:
        print(format_report(key))
        print()

def run_simulator(sim_file=SIMULATOR_FILE):
    """Run the simulator using streamlit"""
    if not os.path.exists(sim_file):
        print(f"❌ Error: {sim_file} not found!")
        print("   Make sure you're in the correct directory.")
        return False

    print(f"🚀 Launching {sim_file}...")
    print("   (Press Ctrl+C to stop)")
    print()

    try:
        subprocess.run(['streamlit', 'run', sim_file])
        return True
    except KeyboardInterrupt:
        print("\n⏹️  Stopped simulator")
        return True
    except FileNotFoundError:
        print("❌ Error: streamlit not found!")
        print("   Install with: pip install streamlit")
        return False

def main():
    """Main launcher loop"""
    print_banner()

    # Check requirements
    if not check_requirements():
        print("Please install required packages first.")
        sys.exit(1)

    while True:
        print_menu()
        choice = input("Select option: ").strip().lower()
        print()

        if choice == 'q':
            print("👋 Goodbye!")
            break

        elif choice == 'h':
            show_help()

        elif choice == '1':
            print(f"Running: {MENU['1']['name']}")
            print(f"File: {SIMULATOR_FILE}")
            print()
            run_simulator()
            print()
            input("Press Enter to return to menu...")

        elif choice == '2':
            print_reports()
            input("Press Enter to return to menu...")

        else:
            print(f"❌ Invalid choice: {choice}")
            print()

if __name__ == '__main__':
    try:
        main()
    except KeyboardInterrupt:
        print("\n\n👋 Interrupted. Goodbye!")
        sys.exit(0)
