# src/repairdesk/domains/equipment/constants.py
"""Equipment domain constants."""

DEFAULT_EQUIPMENT_TYPE = "Laptop"

# Fields the intake form cannot be submitted without
REQUIRED_INTAKE_FIELDS = ["serial_number", "office_number", "assigned_to"]
