"""커스텀 예외 클래스 정의"""


class FrameTryOnException(Exception):
    """기본 예외 클래스"""
    pass


class DetectionError(FrameTryOnException):
    """눈 랜드마크 검출 실패 예외"""
    pass


class DegenerateGeometryError(DetectionError):
    """두 눈 좌표가 겹쳐 배치 계산이 불가능한 경우"""
    pass


class AssetLoadError(FrameTryOnException):
    """안경 이미지 로드/디코드 실패 예외"""
    pass


class ExportError(FrameTryOnException):
    """합성 이미지 내보내기 실패 예외"""
    pass


class InvalidImageError(FrameTryOnException):
    """잘못된 이미지 입력 예외"""
    pass


class ConfigurationError(FrameTryOnException):
    """설정 오류 예외"""
    pass
