from rest_framework import serializers
from .models import Attempt, StudentAnswer
from exams.serializers import AssessmentListSerializer, StudentQuestionSerializer

# --- Request payloads ---

class AnswerInputSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    answer_text = serializers.CharField(required=False, allow_blank=True, default='')
    selected_options = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    # Older clients send a single 'answer' string
    answer = serializers.CharField(required=False, allow_blank=True, write_only=True)

    def validate(self, attrs):
        legacy = attrs.pop('answer', None)
        if legacy and not attrs.get('answer_text'):
            attrs['answer_text'] = legacy
        return attrs

class AutosaveSerializer(serializers.Serializer):
    answers = AnswerInputSerializer(many=True, required=False, default=list)
    current_question = serializers.IntegerField(min_value=0, required=False, allow_null=True)

class SubmitSerializer(serializers.Serializer):
    answers = AnswerInputSerializer(many=True, required=False, default=list)

# --- Responses ---

class AttemptTicketSerializer(serializers.Serializer):
    attempt_id = serializers.IntegerField()
    resumed = serializers.BooleanField()
    time_remaining_seconds = serializers.IntegerField()
    start_time = serializers.DateTimeField()

class SubmissionResultSerializer(serializers.Serializer):
    attempt_id = serializers.IntegerField()
    time_taken_seconds = serializers.IntegerField()
    submitted_at = serializers.DateTimeField()
    correct_answers = serializers.IntegerField()
    total_questions = serializers.IntegerField()
    percentage = serializers.DecimalField(max_digits=5, decimal_places=2)
    grade = serializers.DecimalField(max_digits=8, decimal_places=2)
    total_marks = serializers.IntegerField()
    passed = serializers.BooleanField(allow_null=True)
    needs_manual_grading = serializers.BooleanField()

class StudentAnswerSerializer(serializers.ModelSerializer):
    question_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = StudentAnswer
        fields = ['id', 'question_id', 'answer_text', 'selected_options', 'is_correct', 'awarded_marks', 'updated_at']
        read_only_fields = fields

class AttemptSerializer(serializers.ModelSerializer):
    """Lightweight serializer for lists / dashboard history."""
    assessment = AssessmentListSerializer(read_only=True)

    class Meta:
        model = Attempt
        fields = [
            'id', 'assessment', 'status', 'start_time', 'current_question', 'last_saved',
            'submitted_at', 'time_taken', 'correct_answers', 'total_questions',
            'grade', 'total_marks', 'percentage', 'passed', 'needs_manual_grading',
        ]
        read_only_fields = fields

class AttemptProgressSerializer(serializers.Serializer):
    """Heavy payload for re-entering an attempt: answers so far plus questions."""
    attempt = AttemptSerializer()
    answers = StudentAnswerSerializer(many=True)
    questions = StudentQuestionSerializer(source='attempt.assessment.questions', many=True)
    answered_count = serializers.IntegerField()
    total_questions = serializers.IntegerField()
    progress_percentage = serializers.IntegerField()
    time_remaining_seconds = serializers.IntegerField()

# --- Instructor review & grading ---

class GradeInputSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    marks = serializers.DecimalField(max_digits=6, decimal_places=2, min_value=0)
    is_correct = serializers.BooleanField(required=False, allow_null=True, default=None)

class GradeSerializer(serializers.Serializer):
    grades = GradeInputSerializer(many=True, allow_empty=False)

class SubmissionSerializer(serializers.ModelSerializer):
    """One row of an instructor's submission list."""
    student_email = serializers.CharField(source='student.email', read_only=True)
    student_name = serializers.CharField(source='student.get_full_name', read_only=True)

    class Meta:
        model = Attempt
        fields = [
            'id', 'assessment', 'student', 'student_email', 'student_name', 'status',
            'start_time', 'submitted_at', 'time_taken', 'correct_answers', 'total_questions',
            'grade', 'total_marks', 'percentage', 'passed', 'needs_manual_grading',
        ]
        read_only_fields = fields

class GradedAnswerSerializer(serializers.ModelSerializer):
    """An answer next to its question and key, for review."""
    question_id = serializers.IntegerField(read_only=True)
    question_text = serializers.CharField(source='question.text', read_only=True)
    question_type = serializers.CharField(source='question.question_type', read_only=True)
    max_marks = serializers.IntegerField(source='question.marks', read_only=True)
    correct_answer = serializers.CharField(source='question.correct_answer', read_only=True)

    class Meta:
        model = StudentAnswer
        fields = [
            'question_id', 'question_text', 'question_type', 'max_marks', 'correct_answer',
            'answer_text', 'selected_options', 'is_correct', 'awarded_marks',
        ]
        read_only_fields = fields

class SubmissionDetailSerializer(SubmissionSerializer):
    answers = GradedAnswerSerializer(many=True, read_only=True)

    class Meta(SubmissionSerializer.Meta):
        fields = SubmissionSerializer.Meta.fields + ['answers']
        read_only_fields = fields
