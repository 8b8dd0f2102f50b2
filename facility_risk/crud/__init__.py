from .focus_areas import FocusAreasCRUD
