"""DojoDesk: Streamlit admin console for martial arts clubs."""

__version__ = "0.4.0"
