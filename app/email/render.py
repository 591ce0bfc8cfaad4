from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.utils.time import format_date_for_display, format_time_for_display

_loader = FileSystemLoader(str(Path(__file__).parent / "templates"))
env = Environment(loader=_loader, autoescape=select_autoescape(["html"]))
env.filters["long_date"] = format_date_for_display
env.filters["clock"] = format_time_for_display
render = env.get_template  # render("booking_confirmation.html").render(ctx)
