from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple, Type, Union
from sqlalchemy.sql.expression import Executable

Row = Dict[str, Any]
# Core 문장에는 이름 있는 바인드(dict), 드라이버 문법 문자열에는 위치 파라미터(sequence)
Params = Union[Mapping[str, Any], Sequence[Any]]
Statement = Union[Executable, str]


@dataclass(frozen=True)
class ExecuteResult:
    """
    쓰기 문장 실행 결과

    Attributes:
        rows_affected (int): 영향받은 행 수
        inserted_id (Optional[int]): 백엔드가 보고할 수 있을 때만 채워지는 행 id
    """
    rows_affected: int
    inserted_id: Optional[int] = None


@dataclass(frozen=True)
class RatingStatements:
    """
    한 백엔드가 소유하는 SQLAlchemy Core 문장 묶음

    충돌 처리 문법이 엔진마다 다르므로 각 어댑터 모듈이 자기 방언의 insert로
    upsert를 만들어 인스턴스를 정의한다. 바인드 이름은 모든 백엔드에서 동일하다.

    - upsert_rating: {track_id, artist, title, album, rating, user_session} -> row of {id}
    - rating_counts: {track_id} -> rows of {rating, count}
    - user_rating:   {track_id, user_session} -> row of {rating}
    - delete_user_rating: {track_id, user_session}
    """
    upsert_rating: Executable
    rating_counts: Executable
    user_rating: Executable
    delete_user_rating: Executable


class DatabaseAdapter(Protocol):
    """DB 엔진 어댑터 인터페이스 (Repository Pattern Protocol)"""

    # 엔진 예외의 기반 클래스. 호출자가 엔진 오류만 골라 변환할 때 사용한다.
    errors: Tuple[Type[BaseException], ...]
    statements: RatingStatements

    def connect(self) -> None:
        """
        엔진을 만들고 스키마를 부트스트랩합니다 (metadata.create_all).
        실패 시 엔진 예외를 그대로 전파합니다.
        """
        ...

    def close(self) -> None:
        ...

    @property
    def closed(self) -> bool:
        ...

    def query_all(self, sql: Statement, params: Params = ()) -> List[Row]:
        """
        여러 행 조회

        Returns:
            List[Row]: 컬럼명 -> 값 딕셔너리 목록 (없으면 빈 리스트)
        """
        ...

    def query_one(self, sql: Statement, params: Params = ()) -> Optional[Row]:
        """
        최대 한 행 조회

        Returns:
            Optional[Row]: 일치하는 행이 없으면 None (오류 아님)
        """
        ...

    def execute(self, sql: Statement, params: Params = ()) -> ExecuteResult:
        """
        쓰기 문장 실행 (문장 하나짜리 트랜잭션, 바로 커밋)

        Returns:
            ExecuteResult: 영향받은 행 수와, 가능하면 행 id
        """
        ...
