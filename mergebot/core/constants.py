PDF_MIME_TYPE = "application/pdf"

GDRIVE_DOWNLOAD_URL = "https://drive.google.com/uc"

# Bot API rejects longer sendMessage texts.
TELEGRAM_MESSAGE_LIMIT = 4096


class Messages:
    """User-facing chat texts."""

    START = "Send me a list of PDF links separated by commas or new lines."
    EMPTY_INPUT = "Please provide valid PDF links separated by commas or new lines."
    DOWNLOADING = "Downloading PDFs..."
    FAILED_LINKS = "Failed to download {count} files:\n"
    NO_VALID_PDFS = "No valid PDFs were downloaded."
    PROCESSING_ERROR = "An error occurred while processing the PDFs."
    DELIVERY_ERROR = "An error occurred while sending the merged PDF."
    SUMMARY = "Summary:\n\nSuccessfully Merged PDFs: {success}\nFailed to Merge PDFs: {failed}"


class FailureReason:
    """Per-link failure reasons, logged for operators."""

    NOT_PDF = "link does not point to a PDF file"
    GDRIVE_NOT_PDF = "Google Drive link does not point directly to a PDF file"
    GDRIVE_UNKNOWN_FORMAT = "unrecognised Google Drive confirmation page"
    GDRIVE_MISSING_ID = "Google Drive link has no file id"
    TOO_LARGE = "document exceeds size limit"
    INVALID_URL = "invalid URL"
    TIMEOUT = "request timed out"
    HTTP_STATUS = "HTTP {status_code}"
    TRANSPORT = "transport error: {error}"
    UNEXPECTED = "unexpected error: {error}"
