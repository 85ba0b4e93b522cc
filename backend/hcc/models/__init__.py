from hcc.models.user import User
from hcc.models.slot import Slot
from hcc.models.appointment import Appointment
from hcc.models.drug import Drug
from hcc.models.prescription import Prescription, PrescriptionDrug

__all__ = ["User", "Slot", "Appointment", "Drug", "Prescription", "PrescriptionDrug"]
