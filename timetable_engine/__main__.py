"""
Entry point for running the engine as a module.

Usage:
    python -m timetable_engine solve problem.json -o solution.json
    python -m timetable_engine validate problem.json
    python -m timetable_engine generate problem.json --size small
    python -m timetable_engine view solution.json --class 5a
"""

from timetable_engine.cli import main

if __name__ == "__main__":
    main()
