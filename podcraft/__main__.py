"""Entry point for `python -m podcraft`.

Delegates to `python -m podcraft.pipeline`, which runs the full pipeline.
"""
import runpy
runpy.run_module("podcraft.pipeline", run_name="__main__", alter_sys=True)
