from .plotter import MEDIA_TYPES, build_chart_config, dynamic_chart_plotter, render_chart

__all__ = ["MEDIA_TYPES", "build_chart_config", "dynamic_chart_plotter", "render_chart"]
