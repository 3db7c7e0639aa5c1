import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi_mcp import FastApiMCP
from pymongo.errors import PyMongoError
import uvicorn

from auth import issue_access_token, require_admin, verify_jwt
from availability import compute_availability, resolve_date
from booking import BookingStore, admit_booking
from config import Settings, get_settings
from mailer import send_appointment_email
from models.booking_model import BookingRequest, PaymentRequest
from models.models import DoctorRequest, PaymentIntentRequest, UserRequest
from mongo import PortalDatabase, get_db, serialize_document
from payments import PaymentGatewayError, create_payment_intent

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = PortalDatabase.connect(get_settings())
    db.ensure_indexes()
    app.state.db = db
    logging.info("db connected")
    yield
    db.close()


app = FastAPI(title="Doctors Portal", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_booking_store(db: PortalDatabase = Depends(get_db)) -> BookingStore:
    return BookingStore(db.bookings)


def store_failure(operation: str, e: Exception) -> HTTPException:
    logging.error(f"Error in {operation}: {str(e)}")
    return HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@app.get("/", response_class=PlainTextResponse, include_in_schema=False)
def root():
    return "Welcome to doctors portal server!"


@app.get("/service", operation_id="list_services")
def list_services(db: PortalDatabase = Depends(get_db)):
    try:
        services = list(db.services.find({}, {"name": 1}))
    except PyMongoError as e:
        raise store_failure("list_services", e)
    return [serialize_document(service) for service in services]


@app.get("/available", operation_id="available_slots")
def available_slots(
    date: Optional[str] = None,
    db: PortalDatabase = Depends(get_db),
    store: BookingStore = Depends(get_booking_store),
    settings: Settings = Depends(get_settings),
):
    """
    Services with the slots still open on ``date``
    """
    day = resolve_date(date, settings.default_availability_date)
    try:
        services = list(db.services.find({}))
        bookings = store.find_by_date(day)
    except PyMongoError as e:
        raise store_failure("available_slots", e)
    return [serialize_document(service) for service in compute_availability(day, services, bookings)]


@app.post("/booking", operation_id="create_booking")
def create_booking(
    data: BookingRequest,
    background_tasks: BackgroundTasks,
    store: BookingStore = Depends(get_booking_store),
    settings: Settings = Depends(get_settings),
):
    try:
        result = admit_booking(data, store, strict_slots=settings.strict_slot_admission)
    except PyMongoError as e:
        raise store_failure("create_booking", e)

    if not result.accepted:
        return {"success": False, "booking": serialize_document(result.existing)}

    background_tasks.add_task(send_appointment_email, dict(result.stored), settings)
    return {"success": True, "booking": serialize_document(result.stored)}


@app.get("/booking", operation_id="list_patient_bookings")
def list_patient_bookings(
    patient: Optional[str] = None,
    decoded: dict = Depends(verify_jwt),
    store: BookingStore = Depends(get_booking_store),
):
    if not patient or patient != decoded.get("email"):
        raise HTTPException(status_code=403, detail="Forbidden Access")
    try:
        bookings = store.list_for_patient(patient)
    except PyMongoError as e:
        raise store_failure("list_patient_bookings", e)
    return [serialize_document(booking) for booking in bookings]


@app.get("/booking/{booking_id}", operation_id="get_booking")
def get_booking(
    booking_id: str,
    decoded: dict = Depends(verify_jwt),
    store: BookingStore = Depends(get_booking_store),
):
    try:
        booking = store.get(booking_id)
    except PyMongoError as e:
        raise store_failure("get_booking", e)
    if booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    return serialize_document(booking)


@app.patch("/booking/{booking_id}", operation_id="pay_booking")
def pay_booking(
    booking_id: str,
    payment: PaymentRequest,
    db: PortalDatabase = Depends(get_db),
    store: BookingStore = Depends(get_booking_store),
):
    try:
        updated = store.record_payment(booking_id, payment.model_dump(by_alias=True), db.payments)
    except PyMongoError as e:
        raise store_failure("pay_booking", e)
    if not updated:
        raise HTTPException(status_code=404, detail="Booking not found")
    return {"success": True, "bookingId": booking_id, "transactionId": payment.transaction_id}


@app.get("/users", operation_id="list_users")
def list_users(decoded: dict = Depends(verify_jwt), db: PortalDatabase = Depends(get_db)):
    try:
        users = list(db.users.find({}))
    except PyMongoError as e:
        raise store_failure("list_users", e)
    return [serialize_document(user) for user in users]


@app.get("/admin/{email}", operation_id="check_admin")
def check_admin(email: str, decoded: dict = Depends(verify_jwt), db: PortalDatabase = Depends(get_db)):
    try:
        user = db.users.find_one({"email": email})
    except PyMongoError as e:
        raise store_failure("check_admin", e)
    return {"admin": bool(user) and user.get("role") == "admin"}


@app.put("/user/admin/{email}", operation_id="make_admin")
def make_admin(email: str, requester: dict = Depends(require_admin), db: PortalDatabase = Depends(get_db)):
    try:
        result = db.users.update_one({"email": email}, {"$set": {"role": "admin"}})
    except PyMongoError as e:
        raise store_failure("make_admin", e)
    logging.info(f"{requester.get('email')} made {email} an admin")
    return {"matchedCount": result.matched_count, "modifiedCount": result.modified_count}


@app.put("/user/{email}", operation_id="upsert_user")
def upsert_user(
    email: str,
    data: UserRequest,
    db: PortalDatabase = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user_data = data.model_dump(exclude_none=True)
    # roles only change through /user/admin
    user_data.pop("role", None)
    user_data["email"] = email
    try:
        result = db.users.update_one({"email": email}, {"$set": user_data}, upsert=True)
    except PyMongoError as e:
        raise store_failure("upsert_user", e)

    token = issue_access_token(email, settings)
    return {
        "result": {
            "matchedCount": result.matched_count,
            "modifiedCount": result.modified_count,
            "upsertedId": str(result.upserted_id) if result.upserted_id else None,
        },
        "accessToken": token,
    }


@app.get("/doctor", operation_id="list_doctors")
def list_doctors(requester: dict = Depends(require_admin), db: PortalDatabase = Depends(get_db)):
    try:
        doctors = list(db.doctors.find({}))
    except PyMongoError as e:
        raise store_failure("list_doctors", e)
    return [serialize_document(doctor) for doctor in doctors]


@app.post("/doctor", operation_id="add_doctor")
def add_doctor(data: DoctorRequest, requester: dict = Depends(require_admin), db: PortalDatabase = Depends(get_db)):
    doctor_data = data.model_dump(exclude_none=True)
    try:
        result = db.doctors.insert_one(doctor_data)
    except PyMongoError as e:
        raise store_failure("add_doctor", e)
    return {"insertedId": str(result.inserted_id)}


@app.delete("/doctor/{email}", operation_id="delete_doctor")
def delete_doctor(email: str, requester: dict = Depends(require_admin), db: PortalDatabase = Depends(get_db)):
    try:
        result = db.doctors.delete_one({"email": email})
    except PyMongoError as e:
        raise store_failure("delete_doctor", e)
    return {"deletedCount": result.deleted_count}


@app.post("/create-payment-intent", operation_id="create_payment_intent")
def payment_intent(
    data: PaymentIntentRequest,
    decoded: dict = Depends(verify_jwt),
    settings: Settings = Depends(get_settings),
):
    try:
        client_secret = create_payment_intent(data.price, settings)
    except PaymentGatewayError as e:
        logging.error(f"Error in create_payment_intent: {str(e)}")
        raise HTTPException(status_code=502, detail="Payment gateway error")
    return {"clientSecret": client_secret}


mcp = FastApiMCP(app, include_operations=[
    "list_services",
    "available_slots",
    "create_booking",
    "get_booking",
    "list_patient_bookings",
    "list_doctors",
])
mcp.mount()


def run():
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
