from fastapi import FastAPI, status, File, UploadFile, Depends, Request
import os
import time
import uuid
import shutil
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi.responses import JSONResponse, HTMLResponse
from fastapi.middleware.cors import CORSMiddleware

from config import AppSettings
from excel_file_process import PROCESSING_ERROR_MESSAGE, StudentImportProcessor
from reconciliation import ReconciliationEngine
from student_store import StudentStore
from utils.exceptions import DatabaseError, FileSystemError
from utils.result import Result

settings = AppSettings()

# Create logs directory if it doesn't exist
log_dir = settings.log_dir
os.makedirs(log_dir, exist_ok=True)

# Uploaded workbooks are kept here only while they are processed
UPLOAD_DIR = settings.upload_dir

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Add file handler to write logs to file
log_file_path = os.path.join(log_dir, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(log_file_path)
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
logging.getLogger().addHandler(file_handler)

NO_FILE_MESSAGE = "No file uploaded. Please upload an Excel file."
UNSUPPORTED_FILE_MESSAGE = "Unsupported file type. Please upload an Excel (.xlsx) file."
ALLOWED_EXTENSIONS = {".xlsx"}

UPLOAD_FORM = """<!DOCTYPE html>
<html>
<head><title>Student Records Upload</title></head>
<body>
  <h1>Upload student records</h1>
  <form action="/upload-excel" method="post" enctype="multipart/form-data">
    <input type="file" name="file" accept=".xlsx">
    <button type="submit">Upload</button>
  </form>
</body>
</html>
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = StudentStore(settings.db)
    try:
        store.open()
    except DatabaseError as e:
        # Start degraded; the pool is retried on the next request
        logger.error(f"Starting without database connection: {e}")
    app.state.store = store
    try:
        yield
    finally:
        store.close()


# Initialize FastAPI app with metadata
app = FastAPI(
    title="Student Records Importer API",
    description="API for uploading student spreadsheets and reconciling them with the student database",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_store(request: Request) -> StudentStore:
    """Return the application store, retrying the pool if startup could not open it."""
    store = request.app.state.store
    if not store.is_open:
        try:
            store.open()
        except DatabaseError as e:
            logger.warning(f"Database still unavailable: {e}")
    return store


def allowed_file(filename: str) -> bool:
    return os.path.splitext(filename)[1].lower() in ALLOWED_EXTENSIONS


def save_upload(file: UploadFile, upload_dir: str) -> str:
    """
    Copy an uploaded file to the upload directory under a unique name.

    Args:
        file: The uploaded file
        upload_dir: Directory to store it in

    Returns:
        Path of the saved file

    Raises:
        FileSystemError: If the directory or file cannot be written
    """
    ext = os.path.splitext(file.filename or "")[1]
    file_name = f"{int(time.time() * 1000)}_{str(uuid.uuid4())[:8]}{ext}"
    file_path = os.path.join(upload_dir, file_name)
    try:
        os.makedirs(upload_dir, exist_ok=True)
        with open(file_path, "wb") as buffer:
            shutil.copyfileobj(file.file, buffer)
    except OSError as e:
        logger.error(f"Could not save uploaded file: {e}", extra={"file_path": file_path})
        raise FileSystemError(f"Could not save uploaded file: {e}") from e
    return file_path


def remove_temp_file(file_path: str) -> None:
    """Delete a processed upload; failures are logged and otherwise ignored."""
    try:
        os.remove(file_path)
        logger.info(f"Temporary file deleted: {file_path}")
    except OSError as e:
        error = FileSystemError(f"Error deleting temporary file {file_path}: {e}")
        logger.error(str(error), extra={"file_path": file_path})


# API Endpoints
@app.get("/", response_class=HTMLResponse, tags=["Upload"])
async def home():
    """Serve a minimal HTML form for uploading a student workbook."""
    return UPLOAD_FORM


@app.get("/health", tags=["Health"])
def health(store: StudentStore = Depends(get_store)):
    """Report whether the student database is reachable."""
    if store.ping():
        return {"status": "ok", "database": "up"}
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "degraded", "database": "down"}
    )


@app.post("/upload-excel", tags=["Upload"])
def upload_excel(file: UploadFile = File(None), store: StudentStore = Depends(get_store)):
    """
    Upload a student workbook and insert/update its records.

    The first sheet must contain the columns rollno, name, class, branch,
    gender, dob and prn. Records are matched on prn: existing students are
    updated, new ones inserted. One invalid row rejects the whole file.

    Returns:
        JSON body with success, status_code, status and message/error;
        on success ``data`` holds the inserted/updated/skipped counts.
    """
    if file is None or not file.filename:
        logger.error("No file uploaded.")
        result = Result.invalid_input(NO_FILE_MESSAGE)
        return JSONResponse(status_code=result.status_code.value, content=result.to_dict())

    if not allowed_file(file.filename):
        logger.error(f"Unsupported file type: {file.filename}")
        result = Result.invalid_input(UNSUPPORTED_FILE_MESSAGE)
        return JSONResponse(status_code=result.status_code.value, content=result.to_dict())

    try:
        file_path = save_upload(file, UPLOAD_DIR)
    except FileSystemError:
        result = Result.server_error(PROCESSING_ERROR_MESSAGE)
        return JSONResponse(status_code=result.status_code.value, content=result.to_dict())

    logger.info(f"File received: {file_path}", extra={"original_filename": file.filename})

    try:
        processor = StudentImportProcessor(ReconciliationEngine(store))
        result = processor.process_file(file_path)
    finally:
        # Clean up temporary file
        remove_temp_file(file_path)

    return JSONResponse(status_code=result.status_code.value, content=result.to_dict())


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Student Records Importer API.")
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment != "production"
    )
