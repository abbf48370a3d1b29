from fastapi import APIRouter, Depends, status
from typing import List

from ...api.deps import get_scheduling_service
from ...services.scheduling_service import SchedulingService
from ...schemas.appointment import (
    AppointmentCreate, AppointmentRead, AppointmentUpdateResponse,
    AppointmentWithPatientCreate
)
from ...schemas.common import MessageResponse

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.get("", response_model=List[AppointmentRead])
def list_appointments(
    service: SchedulingService = Depends(get_scheduling_service)
):
    """List all appointments with patient, doctor and clinic names."""
    return service.list()

@router.get("/{appointment_id}", response_model=AppointmentRead)
def get_appointment(
    appointment_id: int,
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Get a single appointment."""
    return service.get(appointment_id)

@router.post("", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
def create_appointment(
    appointment_data: AppointmentCreate,
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Book an appointment for an existing patient."""
    return service.create(appointment_data)

@router.post("/with-patient", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
def create_appointment_with_patient(
    booking_data: AppointmentWithPatientCreate,
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Book an appointment, registering the patient if they are not known yet."""
    return service.create_with_new_patient(booking_data)

@router.put("/{appointment_id}", response_model=AppointmentUpdateResponse)
def update_appointment(
    appointment_id: int,
    appointment_data: AppointmentCreate,
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Replace an appointment; all booking rules are checked again."""
    appointment = service.update(appointment_id, appointment_data)
    return AppointmentUpdateResponse(
        message="Appointment updated successfully.",
        appointment=appointment
    )

@router.delete("/{appointment_id}", response_model=MessageResponse)
def delete_appointment(
    appointment_id: int,
    service: SchedulingService = Depends(get_scheduling_service)
):
    """Delete an appointment."""
    service.delete(appointment_id)
    return MessageResponse(message="Appointment deleted successfully.")
