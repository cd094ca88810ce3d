class LabmarkError(Exception):
    status = 400


class DuplicatePath(LabmarkError):
    status = 409

    def __init__(self, path: str):
        super().__init__(f"{path} already exists")
        self.path = path


class NotFound(LabmarkError):
    status = 404

    def __init__(self, path: str):
        super().__init__(f"{path} not found")
        self.path = path


class NotADirectory(LabmarkError):

    def __init__(self, path: str):
        super().__init__(f"{path} is not a folder")
        self.path = path


class IsADirectory(LabmarkError):

    def __init__(self, path: str):
        super().__init__(f"{path} is a folder")
        self.path = path


class InvalidName(LabmarkError):
    pass


class InvalidMove(LabmarkError):
    pass


class EmptyInput(LabmarkError):
    pass


class NoSelection(LabmarkError):
    pass


class NetworkFailure(LabmarkError):
    status = 502
