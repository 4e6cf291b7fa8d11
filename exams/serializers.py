# exams/serializers.py
from django.contrib.auth import get_user_model
from rest_framework import serializers
from .models import Assessment, Question, Option

User = get_user_model()

# --- Option Serializers ---

class OptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Option
        fields = ['id', 'text', 'is_correct']

class StudentOptionSerializer(serializers.ModelSerializer):
    """What a student sees: never the correct flag."""
    class Meta:
        model = Option
        fields = ['id', 'text']

# --- Question Serializers ---

class QuestionSerializer(serializers.ModelSerializer):
    # Options arrive as a list of strings. Correct ones are named in correct_options,
    # or, for single-answer questions, by matching correct_answer.
    options = serializers.ListField(child=serializers.CharField(), required=False, write_only=True)
    correct_options = serializers.ListField(child=serializers.CharField(), required=False, write_only=True)
    options_data = OptionSerializer(source='options', many=True, read_only=True)

    class Meta:
        model = Question
        fields = [
            'id', 'assessment', 'order', 'text', 'question_type',
            'marks', 'correct_answer', 'options', 'correct_options', 'options_data',
        ]

    def validate(self, attrs):
        q_type = attrs.get('question_type', getattr(self.instance, 'question_type', Question.QuestionType.MULTIPLE_CHOICE))
        if q_type == Question.QuestionType.TRUE_FALSE and 'options' not in attrs and not self.instance:
            attrs['options'] = ['True', 'False']
        if q_type == Question.QuestionType.SHORT_ANSWER and not attrs.get('correct_answer', getattr(self.instance, 'correct_answer', '')).strip():
            raise serializers.ValidationError({"correct_answer": "Short answer questions need a correct answer."})
        if 'correct_options' in attrs:
            if 'options' not in attrs:
                raise serializers.ValidationError({"correct_options": "Send the options together with the correct ones."})
            offered = {text.strip().lower() for text in attrs['options']}
            unknown = [text for text in attrs['correct_options'] if text.strip().lower() not in offered]
            if unknown:
                raise serializers.ValidationError({"correct_options": f"Not among the options: {unknown}"})
        return attrs

    def _write_options(self, question, options_text, correct_options=None):
        if correct_options:
            correct = {text.strip().lower() for text in correct_options}
        else:
            correct = {(question.correct_answer or '').strip().lower()}
        for opt_text in options_text:
            clean_text = opt_text.strip()
            if clean_text:
                Option.objects.create(question=question, text=clean_text, is_correct=(clean_text.lower() in correct))

    def create(self, validated_data):
        options_text = validated_data.pop('options', [])
        correct_options = validated_data.pop('correct_options', None)
        question = Question.objects.create(**validated_data)
        self._write_options(question, options_text, correct_options)
        return question

    def update(self, instance, validated_data):
        options_text = validated_data.pop('options', None)
        correct_options = validated_data.pop('correct_options', None)
        question = super().update(instance, validated_data)
        if options_text is not None:
            question.options.all().delete()
            self._write_options(question, options_text, correct_options)
        return question

class StudentQuestionSerializer(serializers.ModelSerializer):
    options = StudentOptionSerializer(many=True, read_only=True)

    class Meta:
        model = Question
        fields = ['id', 'order', 'text', 'question_type', 'marks', 'options']

# --- Assessment Serializers ---

class AssessmentSerializer(serializers.ModelSerializer):
    total_questions = serializers.IntegerField(source='questions.count', read_only=True)
    instructor = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Assessment
        fields = [
            'id', 'title', 'description', 'instructor', 'duration_minutes',
            'pass_mark_percentage', 'is_published', 'start_date', 'end_date',
            'total_questions', 'created_at',
        ]

    def validate(self, attrs):
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and end <= start:
            raise serializers.ValidationError({"end_date": "End date must be after the start date."})
        return attrs

class AssessmentListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Assessment
        fields = ['id', 'title', 'duration_minutes', 'start_date', 'end_date']

class AssessmentDetailSerializer(AssessmentSerializer):
    """Instructor view, with answer keys."""
    questions = QuestionSerializer(many=True, read_only=True)

    class Meta(AssessmentSerializer.Meta):
        fields = AssessmentSerializer.Meta.fields + ['questions']

# --- Enrollment ---

class EnrollSerializer(serializers.Serializer):
    student_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)

    def validate_student_ids(self, value):
        found = set(User.objects.filter(id__in=value, role=User.Role.STUDENT).values_list('id', flat=True))
        missing = sorted(set(value) - found)
        if missing:
            raise serializers.ValidationError(f"Unknown students: {missing}")
        return sorted(found)
