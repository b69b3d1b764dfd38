"""
Airwaves package __main__ entry point.

Allows running with: python -m airwaves <music_dir>
"""

from airwaves.app.radio import main

if __name__ == "__main__":
    main()
