from app.exception.base_exception import BaseCustomException, ErrorCode

REQUIRED_FIELDS_MESSAGE = "trackId, artist, title, and rating are required"
INVALID_RATING_MESSAGE = "Rating must be one of: love, happy, sad, angry"
MISSING_SESSION_MESSAGE = "userSession is required"


class RatingValidationError(BaseCustomException):
    """필수 필드 누락 또는 허용되지 않은 평점 값. 저장소 호출 전에 발생한다."""
    error_code = ErrorCode.RATING_INVALID_INPUT
    message = REQUIRED_FIELDS_MESSAGE
    status_code = 400


class StorageError(BaseCustomException):
    """DB 어댑터에서 올라온 오류. message에는 엔진의 원본 메시지를 담는다."""
    error_code = ErrorCode.STORAGE_FAILED
    message = "Storage operation failed"
    status_code = 500
