from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Path, Request, status

from student_registry.services.student_service import (
    StudentService,
    get_student_service,
)
from student_registry.utils.responses import ResponseBuilder

students_router = APIRouter()


@students_router.get(
    "/allstudents",
    status_code=status.HTTP_200_OK,
    summary="List all students",
    description="Return every stored student record, ordered by id.",
)
async def get_all_students(
    request: Request,
    student_service: StudentService = Depends(get_student_service),
):
    students = await student_service.list_students()
    return ResponseBuilder.payload(
        request=request,
        content=[student.to_response() for student in students],
    )


@students_router.post(
    "/addstudent",
    status_code=status.HTTP_201_CREATED,
    summary="Create a student",
    description="Validate the payload, assign the next student id and store the record.",
)
async def add_student(
    request: Request,
    payload: Annotated[Any, Body(description="Student fields, without id")],
    student_service: StudentService = Depends(get_student_service),
):
    student = await student_service.create_student(payload)
    return ResponseBuilder.payload(
        request=request,
        content=student.to_response(),
        status_code=status.HTTP_201_CREATED,
    )


@students_router.put(
    "/editstudent/{student_id}",
    status_code=status.HTTP_200_OK,
    summary="Replace a student's fields",
    description="Full update: the payload is validated as a complete record. The id never changes.",
)
async def edit_student(
    request: Request,
    student_id: Annotated[int, Path(description="Student ID to update")],
    payload: Annotated[Any, Body(description="Complete student fields")],
    student_service: StudentService = Depends(get_student_service),
):
    student = await student_service.update_student(student_id, payload)
    return ResponseBuilder.payload(request=request, content=student.to_response())


@students_router.delete(
    "/deletestudent/{student_id}",
    status_code=status.HTTP_200_OK,
    summary="Delete a student",
)
async def delete_student(
    request: Request,
    student_id: Annotated[int, Path(description="Student ID to delete")],
    student_service: StudentService = Depends(get_student_service),
):
    await student_service.delete_student(student_id)
    return ResponseBuilder.payload(request=request, content={"message": "Student deleted"})
