"""
Static marketing page for the studio.
"""

from __future__ import annotations

from dataclasses import dataclass
from html import escape

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter()

STUDIO_NAME = "RoopSnap Photography"
TAGLINE = (
    "Modern portrait and event photography focused on real moments, "
    "natural expressions, and timeless imagery."
)
PHONE_DISPLAY = "332-201-7020"
PHONE_LINK = "tel:3322017020"
INSTAGRAM_HANDLE = "@roop_snap"
INSTAGRAM_URL = "https://www.instagram.com/roop_snap"
HERO_IMAGE_URL = (
    "https://images.unsplash.com/photo-1492691527719-9d1e07e534b4"
    "?q=80&w=2071&auto=format&fit=crop"
)

ABOUT = [
    "At RoopSnap Photography, we create elegant portraits and event imagery "
    "that feel natural, refined, and timeless.",
    "Every session is approached with care, creativity, and attention to detail "
    "to ensure your moments are captured beautifully.",
]

SERVICES = [
    "Birthdays",
    "Special Occasions",
    "Weddings",
    "Newborns",
    "Engagements",
    "Graduations",
    "Housewarming Celebrations",
]


@dataclass(frozen=True)
class Package:
    title: str
    description: str
    starting_price: int


PACKAGES = [
    Package("Starter Session", "1 hour · 10–15 edited photos", 150),
    Package("Standard Session", "2–3 hours · 25–45 edited photos", 250),
    Package("Premium Session", "5 hours · 60+ retouched photos", 1000),
    Package("Event Coverage", "Full-day coverage for weddings and events", 3000),
]

_STYLE = """
body { margin: 0; background: #000; color: #fff; font-family: system-ui, sans-serif; }
section { padding: 5rem 1.5rem; text-align: center; }
.hero { min-height: 80vh; display: flex; flex-direction: column; justify-content: center;
  background: linear-gradient(rgba(0,0,0,.6), rgba(0,0,0,.6)), url('%(hero)s') center/cover; }
.gold { color: #d4af37; }
.grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(220px, 1fr));
  gap: 1.5rem; max-width: 72rem; margin: 0 auto; }
.card { padding: 1.5rem; border-radius: .75rem; background: rgba(255,255,255,.05);
  border: 1px solid rgba(255,255,255,.1); }
.contact a { color: #e5e7eb; margin: 0 1rem; text-decoration: none; }
.button { display: inline-block; padding: .9rem 2.5rem; background: #d4af37; color: #000;
  border-radius: .5rem; text-decoration: none; font-weight: 600; }
"""


def _contact_links() -> str:
    return (
        '<p class="contact">'
        f'<a href="{escape(PHONE_LINK)}">{escape(PHONE_DISPLAY)}</a>'
        f'<a href="{escape(INSTAGRAM_URL)}" target="_blank" rel="noopener noreferrer">'
        f"{escape(INSTAGRAM_HANDLE)}</a>"
        "</p>"
    )


def _services() -> str:
    items = "".join(f'<div class="card">• {escape(service)}</div>' for service in SERVICES)
    return f'<div class="grid">{items}</div>'


def _packages() -> str:
    cards = "".join(
        '<div class="card">'
        f'<h3 class="gold">{escape(package.title)}</h3>'
        f"<p>{escape(package.description)}</p>"
        f"<p><strong>Starting at ${package.starting_price}</strong></p>"
        "</div>"
        for package in PACKAGES
    )
    return f'<div class="grid">{cards}</div>'


def render_home() -> str:
    about = "".join(f"<p>{escape(paragraph)}</p>" for paragraph in ABOUT)
    style = _STYLE % {"hero": HERO_IMAGE_URL}
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{escape(STUDIO_NAME)}</title>
<style>{style}</style>
</head>
<body>
<section class="hero">
<h1>RoopSnap <span class="gold">Photography</span></h1>
<p>{escape(TAGLINE)}</p>
{_contact_links()}
<p class="gold">Now accepting sessions</p>
</section>
<section id="about"><h2>About</h2>{about}</section>
<section id="services"><h2>Services</h2><p>Capturing meaningful moments across</p>{_services()}</section>
<section id="packages"><h2>Packages</h2>{_packages()}</section>
<section id="book">
<h2>Thank you for choosing <span class="gold">{escape(STUDIO_NAME)}</span></h2>
<p>Now accepting bookings.</p>
{_contact_links()}
<a class="button" href="#book">Book a Session</a>
</section>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse)
def home() -> str:
    return render_home()
