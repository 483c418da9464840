"""
Chat Plays 예외 클래스

커스텀 예외를 통해 에러 처리를 명확하게 합니다.
"""


class ChatPlaysError(Exception):
    """Chat Plays 기본 예외"""

    pass


class ActionExecutionError(ChatPlaysError):
    """액션 실행 실패"""

    def __init__(self, description: str, returncode: int | None = None):
        self.description = description
        self.returncode = returncode
        super().__init__(
            f"Action '{description}' failed (returncode={returncode})"
        )


class ProbeError(ChatPlaysError):
    """대상 프로세스 확인 스크립트 자체의 오류"""

    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Probe '{command}' failed: {reason}")


class ChatConnectionError(ChatPlaysError):
    """채팅 서버 연결 오류"""

    pass


class UnknownChannelTypeError(ChatPlaysError):
    """설정되지 않은 채널 타입"""

    def __init__(self, channel_type: str):
        self.channel_type = channel_type
        super().__init__(f"Unknown channel type: {channel_type}")
