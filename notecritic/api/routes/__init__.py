"""Route Modules — one APIRouter per resource, registered explicitly in main.py."""
