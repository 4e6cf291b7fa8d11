from rest_framework import generics, status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAdminUser
from .models import PlatformSetting, AuditLog
from .serializers import PlatformSettingSerializer, AuditLogSerializer

class PlatformSettingView(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        platform = PlatformSetting.load()
        return Response(PlatformSettingSerializer(platform).data)

    def put(self, request):
        platform = PlatformSetting.load()
        serializer = PlatformSettingSerializer(platform, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            AuditLog.record('SETTINGS', platform, actor=request.user,
                            details='Updated platform assessment defaults')
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

class AuditLogListView(generics.ListAPIView):
    queryset = AuditLog.objects.select_related('actor').all()
    serializer_class = AuditLogSerializer
    permission_classes = [IsAdminUser]

    def get_queryset(self):
        queryset = super().get_queryset()
        action = self.request.query_params.get('action')
        if action:
            queryset = queryset.filter(action=action)
        target = self.request.query_params.get('attempt')
        if target:
            queryset = queryset.filter(target_model='Attempt', target_object_id=target)
        return queryset
