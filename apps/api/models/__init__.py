"""Models package."""

from .user import User
from .topic import Topic
from .sub_topic import SubTopic
from .blog import Blog
from .note import Note
from .leetcode_problem import LeetcodeProblem
from .leetcode_solution import LeetcodeSolution
from .problem_resource import ProblemResource
from .interview_resource import InterviewResource
from .interview_rating import InterviewRating
from .comment import Comment
from .comment_reaction import CommentReaction
from .study_room import StudyRoom
from .study_room_member import StudyRoomMember
from .study_room_invitation import StudyRoomInvitation
from .study_note import StudyNote
from .upload import Upload
