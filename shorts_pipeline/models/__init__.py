from shorts_pipeline.models.job import Job
from shorts_pipeline.models.uploaded_video import UploadedVideo
