#!/usr/bin/env python3
"""Density Map Streamlit Dashboard Runner"""

import importlib.util
import subprocess
import sys
from pathlib import Path

def check_dependencies():
    """Check if required packages are installed"""
    required = ['streamlit', 'requests', 'pandas', 'plotly']
    missing = [package for package in required if importlib.util.find_spec(package) is None]

    if missing:
        print(f"❌ Missing packages: {', '.join(missing)}")
        print("Please install with: pip install -e .")
        return False

    return True

def main():
    """Run the Streamlit dashboard"""
    print("🚀 Starting Density Map dashboard...")

    # Check dependencies
    if not check_dependencies():
        sys.exit(1)

    app_path = Path(__file__).parent / "streamlit_app.py"

    if not app_path.exists():
        print(f"❌ Streamlit app not found at {app_path}")
        sys.exit(1)

    # Run Streamlit
    try:
        print("🎯 Starting Streamlit server...")
        print("📊 Dashboard will be available at: http://localhost:8501")
        print("⚠️  Make sure the Density Map API is running at http://localhost:5000")
        print()

        subprocess.run([
            sys.executable, "-m", "streamlit", "run",
            str(app_path),
            "--server.port", "8501",
            "--server.address", "0.0.0.0",
            "--browser.serverAddress", "localhost"
        ])
    except KeyboardInterrupt:
        print("\n👋 Dashboard stopped")

if __name__ == "__main__":
    main()
