from rest_framework import serializers

from .models import Student


class StudentSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(source='user.id', read_only=True)
    username = serializers.CharField(source='user.username', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)
    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = Student
        fields = ['id', 'user_id', 'username', 'email', 'display_name']
