STAGE_GENERATE = 1
STAGE_FRAMES = 2
STAGE_ASSEMBLY = 3
STAGE_UPLOAD = 4
STAGE_DONE = 5

STAGES = {STAGE_GENERATE, STAGE_FRAMES, STAGE_ASSEMBLY, STAGE_UPLOAD, STAGE_DONE}

STATUS_PENDING = "pending"
STATUS_FRAMES_PENDING = "frames_pending"
STATUS_ASSEMBLY_PENDING = "assembly_pending"
STATUS_UPLOAD_PENDING = "upload_pending"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

STATUSES = {
    STATUS_PENDING,
    STATUS_FRAMES_PENDING,
    STATUS_ASSEMBLY_PENDING,
    STATUS_UPLOAD_PENDING,
    STATUS_COMPLETED,
    STATUS_FAILED,
}

# status a job carries while it waits for a given stage
PENDING_STATUS_FOR_STAGE = {
    STAGE_GENERATE: STATUS_PENDING,
    STAGE_FRAMES: STATUS_FRAMES_PENDING,
    STAGE_ASSEMBLY: STATUS_ASSEMBLY_PENDING,
    STAGE_UPLOAD: STATUS_UPLOAD_PENDING,
}

STAGE_LABELS = {
    STAGE_GENERATE: "Content generation",
    STAGE_FRAMES: "Frame creation",
    STAGE_ASSEMBLY: "Video assembly",
    STAGE_UPLOAD: "YouTube upload",
}
