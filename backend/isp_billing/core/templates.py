"""
Template Jinja2 del pannello web
Progetto: ISP Billing (Gestionale ISP)
"""

import os

from fastapi.templating import Jinja2Templates

# isp_billing/core/ -> isp_billing/templates/web
current_dir = os.path.dirname(os.path.abspath(__file__))
templates_dir = os.path.normpath(os.path.join(current_dir, "..", "templates", "web"))

templates = Jinja2Templates(directory=templates_dir)
templates.env.filters["money"] = lambda value: f"{value:,.2f}" if value is not None else "-"
